import io
import os
import struct
import zlib
from datetime import datetime, timedelta, timezone

from PIL import Image

from app import models  # noqa: F401
from app.config import Settings

ADMIN_PASSWORD = "correct-horse"


def make_settings(tmpdir: str, **overrides) -> Settings:
    values = dict(
        DATABASE_URL=f"sqlite+aiosqlite:///{os.path.join(tmpdir, 'test.db')}",
        ADMIN_USERNAME="admin",
        ADMIN_PASSWORD=ADMIN_PASSWORD,
        ADMIN_PASSWORD_HASH="",
        BCRYPT_ROUNDS=4,
        SESSION_SECRET="test-session-secret",
        ENVIRONMENT="development",
        RATE_LIMIT_STORAGE_URI="memory://",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def png_bytes(size=(4, 4), noise=False) -> bytes:
    if noise:
        image = Image.frombytes("RGB", size, os.urandom(size[0] * size[1] * 3))
    else:
        image = Image.new("RGB", size, (200, 120, 80))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def png_header(width, height) -> bytes:
    """A PNG that declares the given size but carries no pixel data."""
    def chunk(kind, data):
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data) & 0xFFFFFFFF)

    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return b"\x89PNG\r\n\x1a\n" + chunk(b"IHDR", ihdr) + chunk(b"IDAT", b"") + chunk(b"IEND", b"")


class FakeBlobStore:
    """Records uploads and deletes instead of talking to Cloudinary."""

    def __init__(self):
        self.uploads = []
        self.deleted = []

    async def upload(self, content, filename, folder):
        self.uploads.append({"folder": folder, "filename": filename, "size": len(content)})
        return {"url": f"https://res.cloudinary.com/demo/image/upload/v1/{folder}/{len(self.uploads)}-{filename}"}

    async def delete(self, url):
        self.deleted.append(url)


class FakeClock:
    def __init__(self, start=0.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeDateTimeClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
