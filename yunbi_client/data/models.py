"""Value types shared by the signing and dispatch layers."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Credential:
    """API key pair supplied once at client construction."""

    access_key: str = ''
    secret_key: str = field(default='', repr=False)

    def __repr__(self) -> str:
        return f"Credential(access_key={self.access_key!r}, secret_key='***')"


@dataclass(frozen=True)
class SignedRequest:
    """Per-call signing artifact. Rebuilt on every request, never persisted."""

    verb: str
    path: str
    query: str
    signature: str
    tonce: int
