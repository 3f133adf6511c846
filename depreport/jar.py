"""Binary metadata of jar-like archives."""

from __future__ import annotations

import zipfile
import zlib
from pathlib import PurePosixPath

import structlog

from depreport.exceptions import InspectionError
from depreport.models import Artifact, JarData

log = structlog.get_logger("depreport.jar")

_CLASS_MAGIC = b"\xca\xfe\xba\xbe"
_MANIFEST = "META-INF/MANIFEST.MF"
# Present in the constant pool only when javac emitted local variable tables (-g).
_DEBUG_ATTRIBUTE = b"LocalVariableTable"


def jdk_revision(major: int) -> str:
    """Map a class file major version to the JDK release that emits it."""
    if major <= 52:
        return f"1.{max(major - 44, 1)}"
    return str(major - 44)


def parse_manifest(text: str) -> dict[str, str]:
    """Main section attributes of a jar manifest (continuation lines joined)."""
    attributes: dict[str, str] = {}
    last_key: str | None = None
    for raw in text.splitlines():
        if not raw.strip():
            break  # end of main section
        if raw.startswith(" ") and last_key is not None:
            attributes[last_key] += raw[1:]
            continue
        key, sep, value = raw.partition(":")
        if not sep:
            continue
        last_key = key.strip()
        attributes[last_key] = value.strip()
    return attributes


class ZipJarInspector:
    """Count entries/classes/packages and read JDK target, debug and sealed flags."""

    def inspect(self, artifact: Artifact) -> JarData:
        if artifact.file is None:
            raise InspectionError(f"{artifact.id} has no file")
        try:
            with zipfile.ZipFile(artifact.file) as archive:
                return self._analyze(archive)
        except (zipfile.BadZipFile, zlib.error) as e:
            raise InspectionError(f"{artifact.file}: {e}") from e
        except (RuntimeError, NotImplementedError) as e:
            # encrypted entries or unsupported compression methods
            raise InspectionError(f"{artifact.file}: {e}") from e
        except OSError as e:
            raise InspectionError(f"{artifact.file}: {e}") from e

    def _analyze(self, archive: zipfile.ZipFile) -> JarData:
        entries = archive.infolist()
        packages: set[str] = set()
        num_classes = 0
        highest_major = 0
        debug = False

        for info in entries:
            if info.is_dir() or not info.filename.endswith(".class"):
                continue
            data = archive.read(info)
            if data[:4] != _CLASS_MAGIC:
                log.debug("jar.not_a_class_file", entry=info.filename)
                continue
            num_classes += 1
            parent = str(PurePosixPath(info.filename).parent)
            packages.add("" if parent == "." else parent.replace("/", "."))
            highest_major = max(highest_major, int.from_bytes(data[6:8], "big"))
            if not debug and _DEBUG_ATTRIBUTE in data:
                debug = True

        sealed = False
        if _MANIFEST in archive.namelist():
            manifest = parse_manifest(archive.read(_MANIFEST).decode("utf-8", errors="replace"))
            sealed = manifest.get("Sealed", "").lower() == "true"

        return JarData(
            num_entries=len(entries),
            num_classes=num_classes,
            num_packages=len(packages),
            jdk_revision=jdk_revision(highest_major) if num_classes else None,
            debug_present=debug,
            sealed=sealed,
        )
