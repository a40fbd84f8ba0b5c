"""
Custom Django model fields for sensitive data.

EncryptedCharField transparently encrypts a value before it is written
and decrypts it when the row is loaded.
"""

import logging

from django.core import validators
from django.db import models

from .encryption import InvalidToken, decrypt_string, encrypt_string

logger = logging.getLogger(__name__)


class EncryptedCharField(models.TextField):
    """
    Char-like field stored as Fernet ciphertext in a text column.

    max_length limits the plaintext, not the ciphertext.
    """

    description = "Encrypted text field"

    def __init__(self, *args, **kwargs):
        self.max_length_validation = kwargs.pop('max_length', None)
        super().__init__(*args, **kwargs)
        if self.max_length_validation:
            self.validators.append(validators.MaxLengthValidator(self.max_length_validation))

    def deconstruct(self):
        name, path, args, kwargs = super().deconstruct()
        if self.max_length_validation:
            kwargs['max_length'] = self.max_length_validation
        return name, path, args, kwargs

    def from_db_value(self, value, expression, connection):
        """Decrypt when loading from database."""
        if value is None:
            return value
        try:
            return decrypt_string(value)
        except InvalidToken:
            logger.error(f"Cannot decrypt {self.model.__name__}.{self.name}; was ENCRYPTION_KEY rotated?")
            return ''

    def get_prep_value(self, value):
        """Encrypt before saving to database."""
        if value is None or value == '':
            return ''
        return encrypt_string(str(value))

    def to_python(self, value):
        if value is None:
            return value
        return str(value)
