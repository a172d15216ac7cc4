from pathlib import Path
from typing import Iterator

DEFAULT_ENCODING: str = "utf8"
CHUNK_SIZE: int = 64_000


def asBytes(value: str | bytes | bytearray | None) -> bytes:
	if isinstance(value, (bytes, bytearray)):
		return bytes(value)
	elif isinstance(value, str):
		return value.encode(DEFAULT_ENCODING)
	elif value is None:
		return b""
	else:
		raise ValueError(f"Expected bytes or str, got: {value!r}")


def iterFile(path: Path, size: int = CHUNK_SIZE) -> Iterator[bytes]:
	"""Yields the contents of the file at `path` in chunks of `size` bytes."""
	with open(path, "rb") as f:
		while chunk := f.read(size):
			yield chunk


# EOF
