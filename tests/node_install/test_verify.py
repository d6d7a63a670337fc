"""
Tests for integrity verification — SHA-256 manifests and OpenPGP signatures.

Signature tests generate a throwaway key and are skipped without gpg.
"""

import hashlib
import shutil
import stat
from pathlib import Path

import pytest

from install_node.core.errors import IntegrityError, PreconditionError
from install_node.core.models.distribution import VerificationMode
from install_node.core.services.node_install.execution.verify import (
    create_keyring,
    import_public_key,
    remove_keyring,
    sha256_file,
    verify_artifact,
    verify_checksum,
)


@pytest.fixture
def artifact(tmp_path: Path) -> Path:
    path = tmp_path / "node-v8.9.4-linux-x64.tar.gz"
    path.write_bytes(b"release bytes " * 1000)
    return path


@pytest.fixture
def keyring():
    home = create_keyring()
    yield home
    remove_keyring(home)


class TestChecksum:
    def test_sha256_file(self, artifact: Path):
        assert sha256_file(artifact) == hashlib.sha256(artifact.read_bytes()).hexdigest()

    def test_match(self, tmp_path: Path, artifact: Path, manifest_for):
        manifest = tmp_path / "SHASUMS256.txt"
        manifest.write_text(manifest_for(artifact))
        assert verify_checksum(artifact, manifest) == sha256_file(artifact)

    def test_one_flipped_byte(self, tmp_path: Path, artifact: Path, manifest_for):
        manifest = tmp_path / "SHASUMS256.txt"
        manifest.write_text(manifest_for(artifact))
        data = bytearray(artifact.read_bytes())
        data[100] ^= 0x01
        artifact.write_bytes(bytes(data))

        with pytest.raises(IntegrityError) as exc:
            verify_checksum(artifact, manifest)
        assert "SHASUM doesn't match" in exc.value.message
        assert exc.value.actual == sha256_file(artifact)
        assert exc.value.expected != exc.value.actual

    def test_no_entry(self, tmp_path: Path, artifact: Path):
        manifest = tmp_path / "SHASUMS256.txt"
        manifest.write_text(f"{'0' * 64}  node-v8.9.4-darwin-x64.tar.gz\n")
        with pytest.raises(IntegrityError, match="No SHASUM entry"):
            verify_checksum(artifact, manifest)

    def test_verify_artifact_checksum_mode(self, tmp_path: Path, artifact: Path, manifest_for):
        manifest = tmp_path / "SHASUMS256.txt"
        manifest.write_text(manifest_for(artifact))
        verify_artifact(artifact, manifest, VerificationMode.CHECKSUM)

    def test_signature_mode_needs_keyring(self, tmp_path: Path, artifact: Path):
        with pytest.raises(IntegrityError, match="No keyring"):
            verify_artifact(artifact, tmp_path / "x.asc", VerificationMode.SIGNATURE)


class TestKeyring:
    def test_private_directory(self, keyring: Path):
        assert keyring.is_dir()
        assert stat.S_IMODE(keyring.stat().st_mode) == 0o700

    def test_fresh_per_call(self, keyring: Path):
        other = create_keyring()
        try:
            assert other != keyring
        finally:
            shutil.rmtree(other)

    def test_under_root(self, tmp_path: Path):
        home = create_keyring(tmp_path / "scratch")
        assert home.parent == tmp_path / "scratch"

    def test_root_under_a_file(self, tmp_path: Path):
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(PreconditionError, match="keyring") as exc:
            create_keyring(blocker / "scratch")
        assert str(blocker / "scratch") in exc.value.message

    def test_remove_deletes_directory(self, tmp_path: Path):
        home = create_keyring(tmp_path)
        (home / "pubring.kbx").write_bytes(b"")
        remove_keyring(home)
        assert not home.exists()

    def test_remove_stops_agent(self, tmp_path, keyring, signer, lingering_processes):
        import_public_key(signer.export_public_key(tmp_path / "pub.asc"), keyring)
        remove_keyring(keyring)
        assert not keyring.exists()
        assert lingering_processes(str(keyring)) == []


class TestSignature:
    def test_good_signature(self, tmp_path, artifact, keyring, signer):
        import_public_key(signer.export_public_key(tmp_path / "key.asc"), keyring)
        signature = signer.sign(artifact)
        verify_artifact(artifact, signature, VerificationMode.SIGNATURE, gnupg_home=keyring)

    def test_signed_by_another_key(self, tmp_path, artifact, keyring, signer, other_signer):
        import_public_key(signer.export_public_key(tmp_path / "key.asc"), keyring)
        signature = other_signer.sign(artifact)
        with pytest.raises(IntegrityError, match="Couldn't verify"):
            verify_artifact(artifact, signature, VerificationMode.SIGNATURE, gnupg_home=keyring)

    def test_tampered_artifact(self, tmp_path, artifact, keyring, signer):
        import_public_key(signer.export_public_key(tmp_path / "key.asc"), keyring)
        signature = signer.sign(artifact)
        artifact.write_bytes(artifact.read_bytes() + b"\0")
        with pytest.raises(IntegrityError):
            verify_artifact(artifact, signature, VerificationMode.SIGNATURE, gnupg_home=keyring)

    def test_empty_keyring(self, artifact, keyring, signer):
        signature = signer.sign(artifact)
        with pytest.raises(IntegrityError):
            verify_artifact(artifact, signature, VerificationMode.SIGNATURE, gnupg_home=keyring)

    def test_garbage_key_rejected(self, tmp_path, keyring, signer):
        key = tmp_path / "pubkey.gpg"
        key.write_text("<html>404 Not Found</html>\n")
        with pytest.raises(IntegrityError, match="Couldn't load the public key"):
            import_public_key(key, keyring)
