"""Locating the Rust standard library sources shipped with the toolchain."""

import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


# crate name -> extern crates it can name
SYSROOT_CRATES: Dict[str, Tuple[str, ...]] = {
    "core": (),
    "alloc": ("core",),
    "std": ("core", "alloc"),
}

LIBRARY_SUBDIR = Path("lib") / "rustlib" / "src" / "rust" / "library"
SYSROOT_EDITION = "2021"


def find_sysroot_library(rustc: str = "rustc") -> Optional[Path]:
    """
    Return the ``library`` directory of the active toolchain's rust-src component.

    Returns None when rustc is missing or rust-src is not installed.
    """
    try:
        result = subprocess.run(
            [rustc, "--print", "sysroot"],
            capture_output=True,
            text=True,
            check=True,
            timeout=30,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("rustc sysroot unavailable: %s", e)
        return None

    library = Path(result.stdout.strip()) / LIBRARY_SUBDIR
    if not library.is_dir():
        logger.info("rust-src not installed under %s; standard library imports stay unresolved", library)
        return None
    return library


def sysroot_crate_roots(library: Path) -> List[Tuple[str, Path]]:
    """``(crate name, lib.rs)`` pairs for the sysroot crates that are present."""
    roots = []
    for name in SYSROOT_CRATES:
        lib_rs = library / name / "src" / "lib.rs"
        if lib_rs.is_file():
            roots.append((name, lib_rs))
    return roots
