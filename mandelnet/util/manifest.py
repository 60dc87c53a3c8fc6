import importlib.metadata as importlib_metadata
import json
import os
import platform
import subprocess
import sys
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from mandelnet.config import RenderConfig

PACKAGES = ("numpy", "Pillow", "numba", "tqdm")

@dataclass(frozen=True)
class RunManifest:
    finished_utc: str
    config: Dict[str, Any]
    strategy: Dict[str, Any]
    output_file: Optional[str]
    elapsed_seconds: Optional[float]
    python: Dict[str, Any]
    packages: Dict[str, str]
    git: Dict[str, Any]
    system: Dict[str, Any]

def _utc_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())

def _pkg_version(name: str) -> Optional[str]:
    try:
        return importlib_metadata.version(name)
    except importlib_metadata.PackageNotFoundError:
        return None

def git_commit() -> Optional[str]:
    try:
        r = subprocess.run(["git", "rev-parse", "HEAD"], capture_output=True, text=True, check=True)
    except (OSError, subprocess.CalledProcessError):
        return None
    return r.stdout.strip() or None

def build_manifest(
    *,
    config: RenderConfig,
    strategy: Dict[str, Any],
    output_file: Optional[str],
    elapsed: Optional[float],
    commit: Optional[str],
) -> RunManifest:
    pkgs = {}
    for name in PACKAGES:
        v = _pkg_version(name)
        if v:
            pkgs[name] = v

    return RunManifest(
        finished_utc=_utc_iso(),
        config=config.as_dict(),
        strategy=strategy,
        output_file=output_file,
        elapsed_seconds=elapsed,
        python={"version": sys.version, "executable": sys.executable},
        packages=pkgs,
        git={"commit": commit},
        system={"platform": platform.platform(), "machine": platform.machine(), "cpus": os.cpu_count()},
    )

def write_manifest(path: str, manifest: RunManifest) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(asdict(manifest), f, indent=2, sort_keys=True)
