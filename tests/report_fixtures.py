from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Tuple

from dsymbolicate.report_parser import BinaryImage

APP_UUID = "0f1e2d3c4b5a69788796a5b4c3d2e1f0"
FRAMEWORK_UUID = "aaaabbbbccccddddeeeeffff00001111"
KERNEL_UUID = "c3f5f0e4d1a23b4c8d9e0f1a2b3c4d5e"

KERNEL_FRAME = "0   libsystem_kernel.dylib        \t0x00000001b2a1e5b8 0x1b2a15000 + 38328"
APP_FRAME = "1   MyApp                         \t0x0000000100f2c5a4 0x100f24000 + 34212"
FRAMEWORK_FRAME = "2   My Framework                  \t0x0000000101a01234 0x101a00000 + 4660"

BINARY_IMAGES = f"""Binary Images:
0x100f24000 - 0x100f2ffff MyApp arm64  <{APP_UUID}> /var/containers/Bundle/Application/X/MyApp.app/MyApp
0x101a00000 - 0x101a0ffff My Framework arm64  <{FRAMEWORK_UUID}> /var/containers/Bundle/Application/X/MyApp.app/Frameworks/My Framework.framework/My Framework
0x1b2a15000 - 0x1b2a4cfff libsystem_kernel.dylib arm64e  <{KERNEL_UUID}> /usr/lib/system/libsystem_kernel.dylib

End of report
"""

HEADER = """Incident Identifier: 5C2D8F0E-1A2B-4C3D-9E8F-0A1B2C3D4E5F
Hardware Model:      iPhone14,2
Process:             MyApp [1234]
Code Type:           ARM-64 (Native)

Exception Type:  EXC_CRASH (SIGABRT)

"""

THREADS = f"""Thread 0 name:  Dispatch queue: com.apple.main-thread
Thread 0 Crashed:
{KERNEL_FRAME}
{APP_FRAME}
{FRAMEWORK_FRAME}

Thread 1:
0   libsystem_pthread.dylib       \t0x00000001f2b0c0a4 0x1f2b0b000 + 4260

Thread 0 crashed with ARM Thread State (64-bit):
    x0: 0x0000000000000000   x1: 0x0000000000000000

"""

REPORT = HEADER + THREADS + BINARY_IMAGES

# Crashed thread lines as they appear in REPORT.
CRASHED_THREAD = [KERNEL_FRAME, APP_FRAME, FRAMEWORK_FRAME, ""]


def dashed_upper(uuid: str) -> str:
    """'0f1e2d3c...' -> '0F1E2D3C-4B5A-6978-8796-A5B4C3D2E1F0'"""
    u = uuid.upper()
    return f"{u[:8]}-{u[8:12]}-{u[12:16]}-{u[16:20]}-{u[20:]}"


def render_image_row(image: BinaryImage, high_address: str = "0x1ffffffff") -> str:
    return (
        f"{image.load_address} - {high_address} {image.name} {image.architecture}  "
        f"<{image.uuid}> /Library/{image.name}"
    )


def make_dsym(work_dir: Path, bundle_name: str, slices: List[str]) -> Path:
    """Create <work_dir>/<bundle_name>/Contents/Resources/DWARF/<slice> files."""
    dwarf_dir = work_dir / bundle_name / "Contents" / "Resources" / "DWARF"
    dwarf_dir.mkdir(parents=True)
    for name in slices:
        (dwarf_dir / name).write_bytes(b"\xcf\xfa\xed\xfe")
    return work_dir / bundle_name


class FakeIdentifier:
    """
    Stand-in for "dwarfdump --uuid". Maps a slice file name to its
    (uuid, arch) pairs and prints them the way dwarfdump does.
    """

    def __init__(self, uuids: Dict[str, List[Tuple[str, str]]]) -> None:
        self.uuids = uuids
        self.calls: List[Path] = []

    def __call__(self, path: Path, **_tool_options: object) -> List[str]:
        self.calls.append(path)
        return [
            f"UUID: {dashed_upper(uuid)} ({arch}) {path}"
            for uuid, arch in self.uuids.get(path.name, [])
        ]


class FakeResolver:
    """Records resolver calls and answers with a symbol per address."""

    def __init__(self, answers: Optional[Dict[str, str]] = None) -> None:
        self.answers = answers or {}
        self.calls: List[Tuple[str, str, str, str]] = []

    def __call__(self, architecture: str, symbol_path: str, load_address: str, address: str) -> str:
        self.calls.append((architecture, symbol_path, load_address, address))
        return self.answers.get(address, f"sym_{address} (in {architecture})")
