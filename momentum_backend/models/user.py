from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional

from momentum_backend.models.identity import UserIdentity


@dataclass(frozen=True)
class UserProfile:
    """The single local user: chosen identities, their progress, and squad membership."""

    name: str
    selected_identities: tuple[str, ...] = field(default_factory=tuple)
    identity_statements: dict = field(default_factory=dict)
    identities: dict = field(default_factory=dict)  # identity name -> UserIdentity
    squad_id: Optional[str] = None
    onboarding_completed: bool = False
    locale: str = "en"

    def identity(self, name: str) -> Optional[UserIdentity]:
        return self.identities.get(name)

    def with_identity(self, identity: UserIdentity) -> UserProfile:
        identities = dict(self.identities)
        identities[identity.name] = identity
        return replace(self, identities=identities)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "selectedIdentities": list(self.selected_identities),
            "identityStatements": dict(self.identity_statements),
            "identities": {name: ident.to_dict() for name, ident in self.identities.items()},
            "squadId": self.squad_id,
            "onboardingCompleted": self.onboarding_completed,
            "locale": self.locale,
        }

    @classmethod
    def from_dict(cls, data: dict) -> UserProfile:
        return cls(
            name=data.get("name", ""),
            selected_identities=tuple(data.get("selectedIdentities", [])),
            identity_statements=dict(data.get("identityStatements", {})),
            identities={
                name: UserIdentity.from_dict({"name": name, **blob})
                for name, blob in (data.get("identities") or {}).items()
            },
            squad_id=data.get("squadId"),
            onboarding_completed=bool(data.get("onboardingCompleted", False)),
            locale=data.get("locale", "en") or "en",
        )
