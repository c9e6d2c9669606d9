"""
Concurrency-safe key/value store holding the environment assembled for the wrapped command. Providers running on worker threads write into one shared Environ through its lock-guarded methods; SafeMerge and SafeAppend never replace a key that is already present, so the first writer for a key wins and providers cannot clobber each other or values seeded from the process environment. Reads (``slice``, ``map``, ``write``) present a normalized view: runs of characters outside ``[0-9A-Za-z_]`` collapse to a single underscore and, when ``upcase_keys`` is set, names are upper-cased. Normalization never touches the stored keys. The store keeps insertion order, so when two raw keys normalize to the same name the one inserted last wins in every read view.

Copyright (c) 2026 Stefan Kumarasinghe

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at http://www.apache.org/licenses/LICENSE-2.0
"""

from __future__ import annotations

import os
import re
import threading
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, TextIO, Tuple

from services.environ.serializers import Serializer, get_serializer, to_json

_NON_WORD_RE = re.compile(r"[^0-9A-Za-z_]+")


class _ReadWriteLock:
    """Many readers or a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


def _split_pair(item: str) -> Optional[Tuple[str, str]]:
    key, sep, value = item.partition("=")
    if not sep:
        return None
    return key, value


class Environ:
    def __init__(self, data: Optional[Mapping[str, str]] = None, upcase_keys: bool = True) -> None:
        self._data: Dict[str, str] = dict(data or {})
        self._lock = _ReadWriteLock()
        self._serializer: Serializer = to_json
        self.upcase_keys = upcase_keys

    @classmethod
    def from_env(cls, upcase_keys: bool = True) -> "Environ":
        return cls(dict(os.environ), upcase_keys=upcase_keys)

    def set(self, key: str, value: str) -> None:
        with self._lock.write():
            self._data[key] = value

    def load(self, key: str) -> Tuple[Optional[str], bool]:
        with self._lock.read():
            if key in self._data:
                return self._data[key], True
            return None, False

    def delete(self, key: str) -> Optional[str]:
        with self._lock.write():
            return self._data.pop(key, None)

    def merge(self, values: Mapping[str, str]) -> None:
        with self._lock.write():
            self._data.update(values)

    def safe_merge(self, values: Mapping[str, str]) -> None:
        with self._lock.write():
            for key, value in values.items():
                if key not in self._data:
                    self._data[key] = value

    def safe_append(self, pairs: Iterable[str]) -> None:
        """Fold ``KEY=VALUE`` strings (``os.environ`` style) in without overwriting."""
        with self._lock.write():
            for item in pairs:
                parsed = _split_pair(item)
                if parsed is None:
                    continue
                key, value = parsed
                if key not in self._data:
                    self._data[key] = value

    def _normalize(self, key: str) -> str:
        key = _NON_WORD_RE.sub("_", key)
        if self.upcase_keys:
            key = key.upper()
        return key

    def _normalized(self) -> Dict[str, str]:
        return {self._normalize(k): v for k, v in self._data.items()}

    def map(self) -> Dict[str, str]:
        with self._lock.read():
            return self._normalized()

    def slice(self) -> List[str]:
        with self._lock.read():
            view = self._normalized()
        return sorted(f"{k}={v}" for k, v in view.items())

    def set_marshaller(self, name: str | None) -> None:
        self._serializer = get_serializer(name)

    def write(self, sink: TextIO) -> None:
        # I/O errors propagate; a partial write is not rolled back.
        with self._lock.read():
            view = self._normalized()
        sink.write(self._serializer(view))

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._data)

    def __contains__(self, key: object) -> bool:
        with self._lock.read():
            return key in self._data

    def __str__(self) -> str:
        return repr(self.slice())
