import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

# Qt must never try to reach a display server while the suite runs.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="module")
def qapp():
    from PySide6.QtWidgets import QApplication

    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def make_image(tmp_path):
    """Write a small test image and return its path."""

    from PIL import Image

    def _make(name="source.jpg", size=(400, 300), color=(200, 40, 40), orientation=None, fmt=None):
        path = tmp_path / name
        image = Image.new("RGB", size, color)
        save_kwargs = {}
        if orientation is not None:
            exif = Image.Exif()
            exif[0x0112] = orientation
            save_kwargs["exif"] = exif.tobytes()
        image.save(path, fmt or None, **save_kwargs)
        return path

    return _make


@pytest.fixture
def broken_png(tmp_path):
    """Write a PNG whose second IDAT chunk has an unreadable chunk type.

    The header parses fine, so the damage only surfaces once pixels are
    decoded.
    """

    import struct

    from PIL import Image

    def _make(name="broken.png", size=(320, 320)):
        path = tmp_path / name
        noise = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
        noise.save(path, "PNG", compress_level=0)

        data = bytearray(path.read_bytes())
        offset = 8
        idat_seen = 0
        while offset < len(data):
            (length,) = struct.unpack(">I", data[offset:offset + 4])
            chunk_type = bytes(data[offset + 4:offset + 8])
            if chunk_type == b"IDAT":
                idat_seen += 1
                if idat_seen == 2:
                    data[offset + 4:offset + 8] = b"\x00\x01\x02\x03"
                    break
            offset += 12 + length
        assert idat_seen == 2, "expected the encoder to split pixel data"
        path.write_bytes(bytes(data))
        return path

    return _make
