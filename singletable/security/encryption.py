from __future__ import annotations

import base64
import hashlib
import json
import os
from typing import Any, Mapping, Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..db.dynamodb.update import UNSET
from ..errors import EncryptionError
from ..observability.logging import get_logger
from ..settings import Settings

log = get_logger("singletable.encryption")

_VERSION = "v1"


class FieldCipher(Protocol):
    """Envelope-encryption algorithm behind the encryptor."""

    async def encrypt_object(self, item: dict[str, Any], options: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
        """Return ``(encrypted_item, metadata)``."""
        ...

    async def decrypt_object(self, item: dict[str, Any], metadata: dict[str, Any]) -> dict[str, Any]:
        ...


class AesGcmFieldCipher:
    """AES-256-GCM over the JSON form of each listed field.

    Ciphertexts are ``v1:<iv>:<tag>:<data>`` with base64 parts.
    """

    def __init__(self, key: str | bytes):
        raw = key.encode("utf-8") if isinstance(key, str) else bytes(key)
        self._key = hashlib.sha256(raw).digest()  # 32 bytes

    def _seal(self, value: Any) -> str:
        iv = os.urandom(12)  # 12 bytes for GCM
        ct_with_tag = AESGCM(self._key).encrypt(iv, json.dumps(value, default=str).encode("utf-8"), None)
        ciphertext, tag = ct_with_tag[:-16], ct_with_tag[-16:]
        return ":".join(
            [
                _VERSION,
                base64.b64encode(iv).decode("ascii"),
                base64.b64encode(tag).decode("ascii"),
                base64.b64encode(ciphertext).decode("ascii"),
            ]
        )

    def _open(self, sealed: Any) -> Any:
        parts = str(sealed).split(":")
        if len(parts) != 4 or parts[0] != _VERSION:
            raise EncryptionError(message="Malformed ciphertext", operation="Decrypt")
        _, iv_b64, tag_b64, data_b64 = parts
        try:
            iv = base64.b64decode(iv_b64)
            tag = base64.b64decode(tag_b64)
            data = base64.b64decode(data_b64)
            pt = AESGCM(self._key).decrypt(iv, data + tag, None)
        except (InvalidTag, ValueError) as e:
            raise EncryptionError(message="Field decryption failed", operation="Decrypt", cause=e) from e
        return json.loads(pt.decode("utf-8"))

    async def encrypt_object(self, item: dict[str, Any], options: dict[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
        fields = [f for f in (options.get("fields") or []) if f in item and item[f] is not None]
        out = dict(item)
        for name in fields:
            out[name] = self._seal(item[name])
        metadata = {k: v for k, v in options.items() if v is not None}
        metadata["fields"] = fields
        metadata["alg"] = "A256GCM"
        return out, metadata

    async def decrypt_object(self, item: dict[str, Any], metadata: dict[str, Any]) -> dict[str, Any]:
        out = dict(item)
        for name in metadata.get("fields") or []:
            if out.get(name) is not None:
                out[name] = self._open(out[name])
        return out


class FieldEncryptor:
    """The encrypt/decrypt capability handed to mappers and repositories.

    Metadata is stored alongside the data under ``eem_field`` so a record
    can be decrypted without knowing which kind wrote it.
    """

    def __init__(
        self,
        cipher: FieldCipher,
        *,
        eem_field: str = "eem",
        master_key_alias: str | None = None,
        regions: list[str] | tuple[str, ...] = (),
    ):
        self.cipher = cipher
        self.eem_field = eem_field
        self.master_key_alias = master_key_alias
        self.regions = list(regions)

    @classmethod
    def from_settings(cls, settings: Settings, cipher: FieldCipher | None = None) -> "FieldEncryptor":
        if cipher is None:
            if not settings.field_encryption_key:
                raise EncryptionError(message="FIELD_ENCRYPTION_KEY is not set", operation="Config")
            cipher = AesGcmFieldCipher(settings.field_encryption_key)
        return cls(
            cipher,
            eem_field=settings.eem_field,
            master_key_alias=settings.master_key_alias,
            regions=settings.kms_region_list,
        )

    async def encrypt(self, eem: Mapping[str, Any] | None, item: Mapping[str, Any]) -> dict[str, Any]:
        options = {
            "masterKeyAlias": self.master_key_alias,
            "regions": self.regions or None,
            **dict(eem or {}),  # fields and overrides
        }
        # Skipped fields stay out of the cipher and are carried through untouched.
        skipped = {k: v for k, v in item.items() if v is UNSET}
        plain = {k: v for k, v in item.items() if v is not UNSET}
        encrypted, metadata = await self.cipher.encrypt_object(plain, options)
        return {**encrypted, **skipped, self.eem_field: metadata}

    async def decrypt(self, item: Mapping[str, Any] | None) -> dict[str, Any] | None:
        if not item:
            return item  # type: ignore[return-value]
        metadata = item.get(self.eem_field)
        if not metadata:
            return dict(item)

        plain = {k: v for k, v in item.items() if k != self.eem_field}
        try:
            return await self.cipher.decrypt_object(plain, dict(metadata))
        except EncryptionError:
            log.warning("decrypt_failed", pk=item.get("pk"), sk=item.get("sk"))
            raise
