"""Integration (configured receiver instance) model."""

import hashlib
import json
from typing import Any, Dict, Iterable

from pydantic import BaseModel, ConfigDict, Field


class IntegrationConfig(BaseModel):
    """
    Identity and configuration of one configured receiver.

    Instances are never edited in place: a configuration change produces a
    new instance (``model_copy(update=...)``) and a new hash, which is what
    tells the reconciliation loop to rebuild the notifier.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    uid: str = Field(..., description="Unique within a configuration set")
    name: str = Field(..., description="Display name, not required to be unique")
    type: str = Field(..., description="Receiver type tag")
    disable_resolve_message: bool = Field(False, alias="disableResolveMessage")
    settings: Dict[str, Any] = Field(default_factory=dict)
    # field name -> base64 of the encrypted value
    secure_settings: Dict[str, str] = Field(default_factory=dict, alias="secureSettings")

    def canonical_json(self) -> str:
        doc = self.model_dump(by_alias=True)
        return json.dumps(doc, ensure_ascii=False, sort_keys=True, separators=(",", ":"))

    def hash(self) -> bytes:
        """128-bit digest of the whole document, secret ciphertext included."""
        return hashlib.md5(self.canonical_json().encode("utf-8")).digest()

    def hash_hex(self) -> str:
        return self.hash().hex()

    def __repr__(self) -> str:
        # secure settings stay out of logs and tracebacks
        return (
            f"IntegrationConfig(uid={self.uid!r}, name={self.name!r}, type={self.type!r}, "
            f"disable_resolve_message={self.disable_resolve_message!r}, "
            f"secure_settings=<{len(self.secure_settings)} hidden>)"
        )

    __str__ = __repr__


def hash_integrations(configs: Iterable[IntegrationConfig]) -> bytes:
    """Digest over a whole configuration set, independent of ordering."""
    digest = hashlib.md5()
    for config in sorted(configs, key=lambda c: c.uid):
        digest.update(config.hash())
    return digest.digest()


def check_unique_uids(configs: Iterable[IntegrationConfig]) -> None:
    seen: set[str] = set()
    for config in configs:
        if config.uid in seen:
            raise ValueError(f"duplicate integration uid: {config.uid}")
        seen.add(config.uid)
