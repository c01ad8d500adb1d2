from .encryption import AesGcmFieldCipher, FieldCipher, FieldEncryptor

__all__ = ["AesGcmFieldCipher", "FieldCipher", "FieldEncryptor"]
