"""Type aliases for zkqsig.

This module defines annotated string types documenting the semantic meaning
of the hex and base64 strings used in persisted structures. Hex types are
normalized on validation (optional 0x prefix stripped, lowercased).
"""

from typing import Annotated, TypeAlias

from pydantic import AfterValidator

from zkqsig.models.validators import normalize_hex, normalize_hex_digest

HexDigest: TypeAlias = Annotated[str, AfterValidator(normalize_hex_digest)]
"""Lowercase hex encoding of a 32-byte digest"""

HexBytes: TypeAlias = Annotated[str, AfterValidator(normalize_hex)]
"""Lowercase hex encoding of arbitrary bytes"""

Base64Bytes: TypeAlias = str
"""Standard-alphabet base64 encoding of arbitrary bytes"""
