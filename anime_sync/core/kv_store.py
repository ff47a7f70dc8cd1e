"""Durable key/value persistence backing every store.

Each collection is persisted as one value under one key, so a single `set`
is the unit of atomicity.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote, unquote

SUFFIX = ".json"


class KeyValueStore:
    """Abstract key/value store. Values are bytes."""

    def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def set(self, key: str, value: bytes) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def keys(self, prefix: str = "") -> List[str]:
        raise NotImplementedError

    def get_all(self, prefix: str = "") -> List[Tuple[str, bytes]]:
        out = []
        for k in self.keys(prefix):
            v = self.get(k)
            if v is not None:
                out.append((k, v))
        return out

    def set_many(self, items: Dict[str, bytes]) -> None:
        for k, v in items.items():
            self.set(k, v)

    def clear(self) -> None:
        for k in self.keys():
            self.remove(k)

    # typed helpers

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get(key)
        if raw is None:
            return default
        return json.loads(raw.decode("utf-8"))

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value, ensure_ascii=False, sort_keys=True).encode("utf-8"))


class MemoryKeyValueStore(KeyValueStore):
    def __init__(self):
        self._data: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self, prefix: str = "") -> List[str]:
        with self._lock:
            return sorted(k for k in self._data if k.startswith(prefix))


class FileKeyValueStore(KeyValueStore):
    """One file per key under `root`.

    `/` separates key segments and maps to subdirectories; each segment is
    percent-quoted. Writes land in a temp file first and are moved into place
    with `os.replace`, so readers see either the old or the new value.
    """

    def __init__(self, root):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        parts = [p for p in key.split("/") if p]
        if not parts or any(p in (".", "..") for p in parts):
            raise ValueError(f"Invalid key: {key!r}")
        segs = [quote(p, safe="") for p in parts]
        return self.root.joinpath(*segs[:-1], segs[-1] + SUFFIX)

    def _key_for(self, path: Path) -> str:
        rel = path.relative_to(self.root).parts
        names = list(rel[:-1]) + [rel[-1][: -len(SUFFIX)]]
        return "/".join(unquote(n) for n in names)

    def get(self, key: str) -> Optional[bytes]:
        try:
            return self.path_for(key).read_bytes()
        except FileNotFoundError:
            return None

    def set(self, key: str, value: bytes) -> None:
        path = self.path_for(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=".tmp-")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, path)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    def remove(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass

    def remove_prefix(self, prefix: str) -> int:
        """Remove every key under `prefix`; returns how many went."""
        n = 0
        for k in self.keys(prefix):
            self.remove(k)
            n += 1
        top = self.root.joinpath(*[quote(p, safe="") for p in prefix.split("/") if p])
        if n and top.is_dir():
            self._prune_empty(top)
        return n

    def keys(self, prefix: str = "") -> List[str]:
        if not self.root.exists():
            return []
        out = []
        for p in self.root.rglob("*" + SUFFIX):
            if p.name.startswith(".tmp-") or not p.is_file():
                continue
            k = self._key_for(p)
            if k.startswith(prefix):
                out.append(k)
        return sorted(out)

    def size_bytes(self) -> int:
        total = 0
        for p in self.root.rglob("*"):
            try:
                if p.is_file():
                    total += p.stat().st_size
            except OSError:
                continue
        return total

    def mtime(self, key: str) -> Optional[float]:
        try:
            return self.path_for(key).stat().st_mtime
        except OSError:
            return None

    def _prune_empty(self, d: Path) -> None:
        while d != self.root and d.is_dir():
            try:
                d.rmdir()
            except OSError:
                return
            d = d.parent

    def prune_empty_dirs(self) -> None:
        for d in sorted((p for p in self.root.rglob("*") if p.is_dir()),
                        key=lambda p: len(p.parts), reverse=True):
            try:
                d.rmdir()
            except OSError:
                continue
