"""zkqsig Models.

Pydantic models for every structure zkqsig persists or exchanges, plus the
shared enums, constants and annotated hex types.
"""

from zkqsig.models.base import ZKQBaseModel
from zkqsig.models.constants import (
    DIGEST_SIZE,
    MANIFEST_VERSION,
    SUPPORTED_MANIFEST_VERSIONS,
    ZERO_LEAF,
)
from zkqsig.models.entities import (
    Allowlist,
    ArtifactRef,
    EncryptionMetadata,
    Manifest,
    SignatureBundle,
    SignerInfo,
    TrustListDocument,
)
from zkqsig.models.enums import (
    ArtifactType,
    CheckStatus,
    CurveId,
    HashAlgorithm,
    VerificationStep,
)
from zkqsig.models.types import Base64Bytes, HexBytes, HexDigest

__all__ = [
    "ZKQBaseModel",
    "DIGEST_SIZE",
    "MANIFEST_VERSION",
    "SUPPORTED_MANIFEST_VERSIONS",
    "ZERO_LEAF",
    "Allowlist",
    "ArtifactRef",
    "EncryptionMetadata",
    "Manifest",
    "SignatureBundle",
    "SignerInfo",
    "TrustListDocument",
    "ArtifactType",
    "CheckStatus",
    "CurveId",
    "HashAlgorithm",
    "VerificationStep",
    "Base64Bytes",
    "HexBytes",
    "HexDigest",
]
