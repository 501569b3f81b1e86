from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from prettyplots.core.config import Margins
from prettyplots.core.errors import ExportError

from .canvas import Canvas
from .render import save_scene

logger = logging.getLogger(__name__)

VECTOR_FORMATS = {".svg": "svg", ".pdf": "pdf", ".eps": "eps"}


def incomplete_path(path: Path) -> Path:
    """Where a partial drawing goes when the draw sequence fails: ``<stem>.incomplete<suffix>``."""
    return path.with_name(f"{path.stem}.incomplete{path.suffix}")


class ExportDevice:
    """A file-backed drawing target.

    Draw on :attr:`canvas` between opening and :meth:`close`. Closing writes the
    figure exactly once. Width and height are in inches and set the size of text
    and plot elements relative to the page, not the resolution.
    """

    def __init__(
        self,
        path: str | Path,
        width: float = 9.0,
        height: float = 5.0,
        *,
        rows: int = 1,
        cols: int = 1,
        margins: Optional[Margins] = None,
    ) -> None:
        self.path = Path(path)
        fmt = VECTOR_FORMATS.get(self.path.suffix.lower())
        if fmt is None:
            raise ExportError(
                f"Unsupported vector format '{self.path.suffix}'. Use one of {sorted(VECTOR_FORMATS)}"
            )
        self.format = fmt
        self._canvas = Canvas(rows, cols, margins=margins, width=width, height=height)
        # open -> complete | incomplete | failed (the write itself raised)
        self.status = "open"
        self.written: Optional[Path] = None

    @property
    def closed(self) -> bool:
        return self.status != "open"

    @property
    def canvas(self) -> Canvas:
        if self.closed:
            raise ExportError(f"Device for {self.path} is already closed")
        return self._canvas

    def close(self, *, failed: bool = False) -> Optional[Path]:
        """Write the figure and release the device. Later calls do nothing.

        With ``failed`` the partial drawing goes to :func:`incomplete_path`
        instead of the requested path, and the status becomes ``"incomplete"``.
        """

        if self.closed:
            return self.written
        scene = self._canvas.scene()
        target = incomplete_path(self.path) if failed else self.path
        if failed:
            logger.error("Draw sequence failed; writing partial figure to %s", target)
        try:
            self.written = save_scene(scene, target, fmt=self.format)
        except Exception:
            self.status = "failed"
            target.unlink(missing_ok=True)
            raise
        self.status = "incomplete" if failed else "complete"
        return self.written


@contextmanager
def open_device(
    path: str | Path,
    width: float = 9.0,
    height: float = 5.0,
    *,
    rows: int = 1,
    cols: int = 1,
    margins: Optional[Margins] = None,
) -> Iterator[ExportDevice]:
    """Send the draw calls made inside the block to a vector-graphics file.

    The device is closed on every exit path. If the block raises, no file is
    written at ``path``; the partial figure is kept next to it as
    ``<stem>.incomplete<suffix>`` and the error propagates.
    """

    device = ExportDevice(path, width, height, rows=rows, cols=cols, margins=margins)
    try:
        yield device
    except BaseException:
        try:
            device.close(failed=True)
        except Exception:
            logger.exception("Could not write partial figure for %s", device.path)
        raise
    device.close()
