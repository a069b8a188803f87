"""
Потоковый вывод рендеринга.
"""

from __future__ import annotations

import io
from typing import IO, Any, Iterator, List, Optional, Union


class TemplateStream:
    """
    Обёртка над генератором фрагментов вывода.

    По умолчанию отдаёт фрагменты по одному; после ``enable_buffering``
    склеивает их в порции заданного размера.
    """

    def __init__(self, gen: Iterator[str]):
        self._gen = gen
        self._next = gen.__next__
        self.buffered = False

    def dump(self, fp: Union[str, IO[Any]], encoding: Optional[str] = None, errors: str = "strict") -> None:
        """
        Пишет весь вывод в файл или файловый объект.

        Args:
            fp: Путь или открытый файловый объект
            encoding: Кодировка; для файлового объекта - записывать байты
            errors: Обработка ошибок кодирования
        """
        close = False
        if isinstance(fp, str):
            fp = open(fp, "w" if encoding is None else "wb")
            close = True
        try:
            if encoding is not None:
                iterable: Iterator[Any] = (chunk.encode(encoding, errors) for chunk in self)
            else:
                iterable = iter(self)
            fp.writelines(iterable)
        finally:
            if close:
                fp.close()

    def disable_buffering(self) -> None:
        self._next = self._gen.__next__
        self.buffered = False

    def _buffered_generator(self, size: int) -> Iterator[str]:
        buf: List[str] = []
        c_size = 0
        while True:
            try:
                while c_size < size:
                    chunk = next(self._gen)
                    buf.append(chunk)
                    if chunk:
                        c_size += 1
            except StopIteration:
                if not c_size:
                    return
            yield "".join(buf)
            del buf[:]
            c_size = 0

    def enable_buffering(self, size: int = 5) -> None:
        """Склеивать по ``size`` непустых фрагментов."""
        if size <= 1:
            raise ValueError("buffer size too small")
        self.buffered = True
        self._next = self._buffered_generator(size).__next__

    def __iter__(self) -> "TemplateStream":
        return self

    def __next__(self) -> str:
        return self._next()  # type: ignore[no-any-return]


def write_buffered(chunks: Iterator[str], sink: IO[str]) -> int:
    """
    Рендерит всё в память и только затем пишет в ``sink``: при ошибке
    рендеринга в приёмник не попадает ничего.

    Returns:
        Количество записанных символов
    """
    buf = io.StringIO()
    for chunk in chunks:
        buf.write(chunk)
    text = buf.getvalue()
    sink.write(text)
    return len(text)


__all__ = ["TemplateStream", "write_buffered"]
