"""
Auto-mark all tests in this directory as integration tests.

These drive ``run_install`` end to end: both releases are published as
real tarballs, served through ``cp`` in place of curl, verified with a
real SHA-256 manifest and a real gpg signature, unpacked and installed
into a temp tree.

Run ONLY integration tests:
    pytest tests/integration/ -m integration

Run ONLY unit tests:
    pytest -m "not integration"
"""

import textwrap
from pathlib import Path

import pytest

NODE_SCRIPT = "#!/bin/sh\necho v8.9.4\n"

YARN_GLOBAL_BIN = "/usr/local/share/.config/yarn/global/node_modules/.bin"
YARN_SCRIPT = f"""#!/bin/sh
case "$1" in
  --version) echo 1.3.2 ;;
  global) echo {YARN_GLOBAL_BIN} ;;
  *) exit 1 ;;
esac
"""

CONFIGURE = textwrap.dedent("""\
    #!/bin/sh
    for arg in "$@"; do
      case "$arg" in --prefix=*) prefix="${arg#--prefix=}" ;; esac
    done
    printf 'PREFIX = %s\\n' "$prefix" > config.mk
""")

MAKEFILE = (
    "include config.mk\n"
    "\n"
    "all:\n"
    "\t@echo built\n"
    "\n"
    "install:\n"
    "\tmkdir -p $(PREFIX)/bin $(PREFIX)/lib/node_modules/npm\n"
    "\tcp node.sh $(PREFIX)/bin/node\n"
    "\tchmod 755 $(PREFIX)/bin/node\n"
    "\tcp node.sh $(PREFIX)/bin/npm\n"
    "\techo '{}' > $(PREFIX)/lib/node_modules/npm/package.json\n"
)


def pytest_collection_modifyitems(items):
    """Auto-apply the 'integration' marker to every test in this directory."""
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


class ReleaseServer:
    """Publishes Node.js and Yarn releases where the settings point."""

    def __init__(self, root: Path, settings, transfer, signer, make_tarball, manifest_for) -> None:
        self.root = root
        self.settings = settings
        self.transfer = transfer
        self.signer = signer
        self.make_tarball = make_tarball
        self.manifest_for = manifest_for

    def _serve(self, url: str, path: Path) -> Path:
        self.transfer.serve(url, path)
        return path

    def publish_node_binary(self, manifest_text: str | None = None) -> Path:
        s = self.settings
        v = s.runtime_version
        root = f"node-{v}-{s.runtime_variant}"
        archive = self.make_tarball(
            self.root / f"{root}.tar.gz",
            root,
            {
                "bin/node": NODE_SCRIPT,
                "lib/node_modules/npm/bin/npm-cli.js": "// npm\n",
                "lib/node_modules/npm/bin/npx-cli.js": "// npx\n",
                "README.md": "# Node.js\n",
                "CHANGELOG.md": "",
                "LICENSE": "MIT\n",
                "share/man/man1/node.1": "",
                "include/node/node.h": "",
            },
            executables=("bin/node",),
            symlinks={
                "bin/npm": "../lib/node_modules/npm/bin/npm-cli.js",
                "bin/npx": "../lib/node_modules/npm/bin/npx-cli.js",
            },
        )
        self._publish_manifest(archive, manifest_text)
        return self._serve(f"{s.runtime_mirror}/{v}/{archive.name}", archive)

    def publish_node_source(self) -> Path:
        s = self.settings
        v = s.runtime_version
        root = f"node-{v}"
        archive = self.make_tarball(
            self.root / f"{root}.tar.gz",
            root,
            {"configure": CONFIGURE, "Makefile": MAKEFILE, "node.sh": NODE_SCRIPT},
            executables=("configure", "node.sh"),
        )
        self._publish_manifest(archive, None)
        return self._serve(f"{s.runtime_mirror}/{v}/{archive.name}", archive)

    def _publish_manifest(self, archive: Path, text: str | None) -> None:
        s = self.settings
        manifest = self.root / "SHASUMS256.txt"
        manifest.write_text(text if text is not None else self.manifest_for(archive))
        self._serve(f"{s.runtime_integrity_host}/{s.runtime_version}/SHASUMS256.txt", manifest)

    def publish_yarn(self, signer=None) -> Path:
        s = self.settings
        v = s.pkgmgr_version
        archive = self.make_tarball(
            self.root / f"yarn-{v}.tar.gz",
            f"yarn-{v}",
            {
                "bin/yarn": YARN_SCRIPT,
                "lib/cli.js": "// yarn\n",
                "LICENSE": "BSD\n",
                "README.md": "# Yarn\n",
                "node_modules/dep/LICENSE": "",
                "node_modules/dep/README.md": "",
            },
            executables=("bin/yarn",),
        )
        signature = (signer or self.signer).sign(archive, self.root / f"{archive.name}.asc")
        self._serve(f"{s.pkgmgr_mirror}/{v}/{archive.name}", archive)
        self._serve(f"{s.pkgmgr_integrity_host}/{v}/{signature.name}", signature)
        key = self.signer.export_public_key(self.root / "pubkey.gpg")
        self._serve(s.pkgmgr_key_url, key)
        return archive


@pytest.fixture
def release_server(tmp_path, local_transfer, signer, make_tarball, manifest_for):
    """Factory: ``release_server(settings)`` → ``ReleaseServer``."""
    served = tmp_path / "served"
    served.mkdir()

    def _make(settings) -> ReleaseServer:
        return ReleaseServer(
            served, settings, local_transfer, signer, make_tarball, manifest_for,
        )

    return _make
