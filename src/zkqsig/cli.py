"""Command-line interface for zkqsig.

This module wires the library operations into a typer app: key generation,
allow-list and trust-list construction, artifact encryption, proof
generation, verification and tamper checks.

Example:
    >>> # From terminal:
    >>> # zkqsig --version
    >>> # zkqsig keys generate --out signer.pem --curve p256
    >>> # zkqsig allowlist from-certs a.pem b.pem --out allowlist.json
    >>> # zkqsig build-trust-list --allowlist allowlist.json --out trust.json
    >>> # zkqsig encrypt doc.pdf --key sender.pem --recipient r.pub --doc-hash <hex> \\
    >>> #     --metadata doc.meta.json --out doc.enc
    >>> # zkqsig prove --bundle sig.json --ciphertext doc.enc --trust-list trust.json \\
    >>> #     --backend-key backend.key --out manifest.json
    >>> # zkqsig verify manifest.json --ciphertext doc.enc --trust-list trust.json \\
    >>> #     --backend-key backend.key
"""

import hashlib
import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer
from pydantic import ValidationError

from zkqsig import __version__
from zkqsig.config import Settings, load_settings
from zkqsig.crypto.encryption import EncryptedArtifact, decrypt, encrypt
from zkqsig.crypto.fingerprint import encode_leaf
from zkqsig.crypto.keys import (
    PrivateKeyHandle,
    generate_keypair,
    public_key_to_bytes,
    serialize_private_key,
)
from zkqsig.errors import ZKQSigError
from zkqsig.models.entities import EncryptionMetadata, SignatureBundle, TrustListDocument
from zkqsig.models.enums import CheckStatus, CurveId, HashAlgorithm
from zkqsig.proving.backend import StubProofBackend
from zkqsig.proving.manifest_io import write_manifest
from zkqsig.proving.orchestrator import ProofOrchestrator
from zkqsig.store import FileArtifactStore
from zkqsig.trust.allowlist import (
    allowlist_leaves,
    build_allowlist_from_certificates,
    load_allowlist,
    write_allowlist,
)
from zkqsig.trust.merkle import TrustList
from zkqsig.utils.files import atomic_write_bytes, atomic_write_json
from zkqsig.verification.tamper import TamperDetector
from zkqsig.verification.verifier import ManifestVerifier

app = typer.Typer(help="zkqsig CLI.")

keys_app = typer.Typer(help="Key generation.")
app.add_typer(keys_app, name="keys")

allowlist_app = typer.Typer(help="Allow-list tooling.")
app.add_typer(allowlist_app, name="allowlist")

# Restrict private key and backend secret files to owner read/write only
PRIVATE_KEY_FILE_MODE = 0o600

BACKEND_KEY_SIZE = 32

_state: dict[str, Settings] = {}


def _settings() -> Settings:
    if "settings" not in _state:
        _state["settings"] = load_settings()
    return _state["settings"]


@contextmanager
def _reporting_errors() -> Iterator[None]:
    """Print library errors as ``Error: <code>: <message>`` and exit 1."""
    try:
        yield
    except ZKQSigError as exc:
        typer.echo(f"Error: {exc.code}: {exc.message}", err=True)
        raise typer.Exit(1) from exc
    except (ValueError, KeyError, OSError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc


def _require_file(path: Path, what: str) -> None:
    if not path.is_file():
        raise typer.BadParameter(f"{what} not found: {path}")


def _hex_value(value: str, what: str) -> bytes:
    """Hex given inline or as a path to a file holding hex text."""
    candidate = Path(value)
    text = candidate.read_text(encoding="utf-8") if candidate.is_file() else value
    text = text.strip().removeprefix("0x")
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise typer.BadParameter(f"{what} is not valid hex") from exc


def _load_backend_key(path: Path) -> bytes:
    _require_file(path, "Backend key file")
    key = path.read_bytes()
    if len(key) != BACKEND_KEY_SIZE:
        raise typer.BadParameter(
            f"Backend key must be {BACKEND_KEY_SIZE} bytes, got {len(key)}: {path}"
        )
    return key


def _load_trust_list(path: Path) -> TrustList:
    _require_file(path, "Trust list file")
    try:
        document = TrustListDocument.model_validate_json(path.read_bytes())
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid trust list {path}: {exc}") from exc
    return TrustList.from_document(document)


def _expected_root(trust_list: Optional[Path], trust_root: Optional[str]) -> bytes:
    if (trust_list is None) == (trust_root is None):
        raise typer.BadParameter("Pass exactly one of --trust-list or --trust-root.")
    if trust_list is not None:
        return _load_trust_list(trust_list).root
    assert trust_root is not None
    root = _hex_value(trust_root, "Trust root")
    if len(root) != 32:
        raise typer.BadParameter(f"Trust root must be 32 bytes, got {len(root)}")
    return root


def _version_callback(value: bool) -> None:
    """Print the version and exit when requested."""
    if value:
        typer.echo(__version__)
        raise typer.Exit()


VERSION_OPTION = typer.Option(
    False,
    "--version",
    help="Show zkqsig version and exit.",
    callback=_version_callback,
    is_eager=True,
)


@app.callback()
def cli(
    version: bool = VERSION_OPTION,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """zkqsig CLI entrypoint."""
    _state.pop("settings", None)
    try:
        _settings()
    except ValueError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(1) from exc
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)


@keys_app.command("generate")
def keys_generate(
    out: Annotated[
        Path,
        typer.Option(..., "--out", "-o", help="Output path for the private key PEM file."),
    ],
    curve: Annotated[
        Optional[CurveId],
        typer.Option("--curve", help="Key curve (default: ZKQSIG_CURVE or p256)."),
    ] = None,
) -> None:
    """Write a new key pair: PEM private key (mode 0600) and hex public key (.pub)."""
    if out.exists() and out.is_dir():
        raise typer.BadParameter(f"Output path is a directory: {out}")
    curve = curve or _settings().curve
    private_key, public_key = generate_keypair(curve)
    atomic_write_bytes(out, serialize_private_key(private_key), mode=PRIVATE_KEY_FILE_MODE)
    public_out = out.with_suffix(".pub")
    atomic_write_bytes(public_out, (public_key_to_bytes(public_key).hex() + "\n").encode("ascii"))
    typer.echo(f"Private key written to {out}")
    typer.echo(f"Public key written to {public_out}")
    typer.echo(f"Fingerprint: {encode_leaf(public_key).hex()}")


@keys_app.command("backend-secret")
def keys_backend_secret(
    out: Annotated[
        Path,
        typer.Option(..., "--out", "-o", help="Output path for the stub backend secret."),
    ],
) -> None:
    """Write a random 32-byte stub proof backend secret (mode 0600)."""
    if out.exists() and out.is_dir():
        raise typer.BadParameter(f"Output path is a directory: {out}")
    atomic_write_bytes(out, os.urandom(BACKEND_KEY_SIZE), mode=PRIVATE_KEY_FILE_MODE)
    typer.echo(f"Backend secret written to {out}")


@allowlist_app.command("from-certs")
def allowlist_from_certs(
    certs: Annotated[
        list[Path],
        typer.Argument(help="Signer certificates (PEM or DER), in allow-list order."),
    ],
    out: Annotated[
        Path,
        typer.Option(..., "--out", "-o", help="Output path for the allow-list JSON."),
    ],
    sort: Annotated[
        bool,
        typer.Option("--sort", help="Sort fingerprints lexicographically."),
    ] = False,
) -> None:
    """Fingerprint certificates into an allow-list file."""
    for cert in certs:
        _require_file(cert, "Certificate")
    with _reporting_errors():
        allowlist = build_allowlist_from_certificates(certs, sort=sort)
        write_allowlist(allowlist, out)
    typer.echo(f"Allow-list with {len(allowlist.cert_fingerprints)} fingerprint(s) written to {out}")


@app.command("build-trust-list")
def build_trust_list_command(
    out: Annotated[
        Path,
        typer.Option(..., "--out", "-o", help="Output path for the trust list JSON."),
    ],
    allowlist: Annotated[
        Optional[Path],
        typer.Option("--allowlist", help="Allow-list JSON (cert_fingerprints)."),
    ] = None,
    public_keys: Annotated[
        Optional[list[Path]],
        typer.Option("--public-key", help="Hex public key file; repeat per signer, in order."),
    ] = None,
    curve: Annotated[
        Optional[CurveId],
        typer.Option("--curve", help="Curve of --public-key inputs."),
    ] = None,
    hash_algorithm: Annotated[
        Optional[HashAlgorithm],
        typer.Option("--hash", help="Merkle hash (default: ZKQSIG_MERKLE_HASH or sha256)."),
    ] = None,
) -> None:
    """Build a fixed-depth Merkle trust list and print its root."""
    if (allowlist is None) == (not public_keys):
        raise typer.BadParameter("Pass exactly one of --allowlist or --public-key.")
    settings = _settings()
    with _reporting_errors():
        if allowlist is not None:
            _require_file(allowlist, "Allow-list file")
            leaves = allowlist_leaves(load_allowlist(allowlist))
        else:
            assert public_keys is not None
            leaves = [
                encode_leaf(_hex_value(str(p), "Public key"), curve or settings.curve)
                for p in public_keys
            ]
        trust_list = TrustList.from_leaves(leaves, hash_algorithm or settings.merkle_hash)
        atomic_write_json(out, trust_list.to_document().to_json_dict())
    typer.echo(f"Trust list written to {out}")
    typer.echo(f"Root: {trust_list.root_hex}")
    typer.echo(f"Depth: {trust_list.depth}")


@app.command("encrypt")
def encrypt_command(
    input_file: Annotated[Path, typer.Argument(help="Plaintext file to encrypt.")],
    key: Annotated[Path, typer.Option(..., "--key", "-k", help="Sender private key file.")],
    recipient: Annotated[
        str,
        typer.Option(..., "--recipient", "-r", help="Recipient public key (hex or .pub file)."),
    ],
    doc_hash: Annotated[
        str,
        typer.Option(..., "--doc-hash", help="32-byte signed document hash (hex or file)."),
    ],
    metadata_out: Annotated[
        Path,
        typer.Option(..., "--metadata", "-m", help="Output path for encryption metadata JSON."),
    ],
    out: Annotated[
        Optional[Path],
        typer.Option("--out", "-o", help="Also write the ciphertext to this path."),
    ] = None,
    curve: Annotated[
        Optional[CurveId],
        typer.Option("--curve", help="Key-agreement curve (default: ZKQSIG_CURVE or p256)."),
    ] = None,
    store_dir: Annotated[
        Optional[Path],
        typer.Option("--store", help="Content-addressed store directory."),
    ] = None,
) -> None:
    """Encrypt a file bound to a document hash; store the ciphertext by its hash."""
    _require_file(input_file, "Input file")
    _require_file(key, "Key file")
    settings = _settings()
    document_hash = _hex_value(doc_hash, "Document hash")
    recipient_key = _hex_value(recipient, "Recipient public key")
    plaintext = input_file.read_bytes()
    with _reporting_errors():
        handle = PrivateKeyHandle.from_file(key, curve or settings.curve)
        artifact, artifact_hash = encrypt(plaintext, handle, recipient_key, document_hash)
        metadata = artifact.to_metadata(original_hash=hashlib.sha256(plaintext).digest())
        FileArtifactStore(store_dir or settings.store_dir).put(artifact.ciphertext)
        if out is not None:
            atomic_write_bytes(out, artifact.ciphertext)
        atomic_write_json(metadata_out, metadata.to_json_dict())
    typer.echo(f"Artifact hash: {artifact_hash.hex()}")
    typer.echo(f"Metadata written to {metadata_out}")


@app.command("decrypt")
def decrypt_command(
    metadata_file: Annotated[
        Path,
        typer.Option(..., "--metadata", "-m", help="Encryption metadata JSON."),
    ],
    key: Annotated[Path, typer.Option(..., "--key", "-k", help="Recipient private key file.")],
    out: Annotated[Path, typer.Option(..., "--out", "-o", help="Output path for plaintext.")],
    ciphertext_file: Annotated[
        Optional[Path],
        typer.Option("--ciphertext", help="Ciphertext file (default: read from the store)."),
    ] = None,
    doc_hash: Annotated[
        Optional[str],
        typer.Option("--doc-hash", help="Expected document hash (default: metadata AAD)."),
    ] = None,
    store_dir: Annotated[
        Optional[Path],
        typer.Option("--store", help="Content-addressed store directory."),
    ] = None,
) -> None:
    """Decrypt an artifact; nothing is written unless authentication succeeds."""
    _require_file(metadata_file, "Metadata file")
    _require_file(key, "Key file")
    try:
        metadata = EncryptionMetadata.model_validate_json(metadata_file.read_bytes())
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid metadata {metadata_file}: {exc}") from exc
    document_hash = (
        _hex_value(doc_hash, "Document hash") if doc_hash else bytes.fromhex(metadata.aad)
    )
    with _reporting_errors():
        if ciphertext_file is not None:
            _require_file(ciphertext_file, "Ciphertext file")
            ciphertext = ciphertext_file.read_bytes()
        else:
            ciphertext = FileArtifactStore(store_dir or _settings().store_dir).get(
                metadata.artifact_hash
            )
        artifact = EncryptedArtifact.from_metadata(metadata, ciphertext)
        plaintext = decrypt(
            artifact,
            PrivateKeyHandle.from_file(key, metadata.curve),
            document_hash,
            expected_plaintext_hash=bytes.fromhex(metadata.original_hash),
        )
        atomic_write_bytes(out, plaintext)
    typer.echo(f"Plaintext ({len(plaintext)} bytes) written to {out}")


@app.command("prove")
def prove_command(
    bundle_file: Annotated[
        Path,
        typer.Option(..., "--bundle", help="Signature bundle JSON from the signature extractor."),
    ],
    ciphertext_file: Annotated[
        Path,
        typer.Option(..., "--ciphertext", help="Final ciphertext the manifest binds to."),
    ],
    trust_list_file: Annotated[
        Path,
        typer.Option(..., "--trust-list", help="Trust list JSON containing the signer."),
    ],
    backend_key: Annotated[
        Path,
        typer.Option(..., "--backend-key", help="Stub proof backend secret."),
    ],
    out: Annotated[Path, typer.Option(..., "--out", "-o", help="Output path for the manifest.")],
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Seconds before proof generation is abandoned."),
    ] = None,
    notes: Annotated[
        Optional[str],
        typer.Option("--notes", help="Free-text note stored in the manifest."),
    ] = None,
) -> None:
    """Generate a proof and write the manifest atomically."""
    _require_file(bundle_file, "Signature bundle")
    _require_file(ciphertext_file, "Ciphertext file")
    try:
        bundle = SignatureBundle.model_validate_json(bundle_file.read_bytes())
    except ValidationError as exc:
        raise typer.BadParameter(f"Invalid signature bundle {bundle_file}: {exc}") from exc
    trust_list = _load_trust_list(trust_list_file)
    secret = _load_backend_key(backend_key)
    with _reporting_errors():
        backend = StubProofBackend(
            secret, hash_algorithm=trust_list.hash_algorithm, curve=bundle.curve
        )
        orchestrator = ProofOrchestrator(backend, _settings())
        kwargs: dict[str, object] = {"notes": notes}
        if timeout is not None:
            kwargs["timeout"] = timeout
        manifest = orchestrator.prove_bundle(
            bundle, ciphertext_file.read_bytes(), trust_list, **kwargs
        )
        write_manifest(manifest, out)
    typer.echo(f"Manifest written to {out}")


@app.command("verify")
def verify_command(
    manifest_file: Annotated[Path, typer.Argument(help="Manifest JSON to verify.")],
    ciphertext_file: Annotated[
        Path,
        typer.Option(..., "--ciphertext", help="Ciphertext the manifest claims to bind."),
    ],
    backend_key: Annotated[
        Path,
        typer.Option(..., "--backend-key", help="Stub proof backend verification key."),
    ],
    trust_list: Annotated[
        Optional[Path],
        typer.Option("--trust-list", help="Trust list JSON holding the expected root."),
    ] = None,
    trust_root: Annotated[
        Optional[str],
        typer.Option("--trust-root", help="Expected trust root (hex)."),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the report as JSON."),
    ] = False,
) -> None:
    """Run the five manifest checks; exit 1 if any fails."""
    _require_file(manifest_file, "Manifest file")
    _require_file(ciphertext_file, "Ciphertext file")
    root = _expected_root(trust_list, trust_root)
    key = _load_backend_key(backend_key)
    verifier = ManifestVerifier(StubProofBackend(key), key, _settings())
    with _reporting_errors():
        report = verifier.verify(manifest_file.read_bytes(), ciphertext_file.read_bytes(), root)
    if as_json:
        typer.echo(json.dumps(report.model_dump(mode="json"), indent=2))
    else:
        for line in report.summary_lines():
            typer.echo(line)
    if not report.ok:
        raise typer.Exit(1)
    if not as_json:
        typer.echo(f"Manifest valid: {manifest_file}")


@app.command("tamper-check")
def tamper_check_command(
    manifest_file: Annotated[Path, typer.Argument(help="Known-good manifest JSON.")],
    ciphertext_file: Annotated[
        Path,
        typer.Option(..., "--ciphertext", help="Ciphertext bound by the manifest."),
    ],
    backend_key: Annotated[
        Path,
        typer.Option(..., "--backend-key", help="Stub proof backend verification key."),
    ],
    trust_list: Annotated[
        Optional[Path],
        typer.Option("--trust-list", help="Trust list JSON holding the expected root."),
    ] = None,
    trust_root: Annotated[
        Optional[str],
        typer.Option("--trust-root", help="Expected trust root (hex)."),
    ] = None,
) -> None:
    """Apply single-field mutations and check each is caught at its own step."""
    _require_file(manifest_file, "Manifest file")
    _require_file(ciphertext_file, "Ciphertext file")
    root = _expected_root(trust_list, trust_root)
    key = _load_backend_key(backend_key)
    detector = TamperDetector(ManifestVerifier(StubProofBackend(key), key, _settings()))
    with _reporting_errors():
        report = detector.run(manifest_file.read_bytes(), ciphertext_file.read_bytes(), root)
    if not report.baseline_ok:
        typer.echo("Baseline manifest does not verify; nothing to tamper with.", err=True)
        raise typer.Exit(1)
    for outcome in report.outcomes:
        status = CheckStatus.PASSED if outcome.detected else CheckStatus.FAILED
        typer.echo(
            f"{outcome.mutation}: expected {outcome.expected_step.value}, "
            f"observed {outcome.observed} [{status.value}]"
        )
    if not report.ok:
        raise typer.Exit(1)


def main() -> None:
    """Run the zkqsig CLI."""
    app()


if __name__ == "__main__":
    main()
