from __future__ import annotations

from pathlib import Path
import re
import threading

from sketchqr_core.encoder import EncoderOptions
from sketchqr_core.offscreen import OffscreenContainer


FIXTURES = Path(__file__).parent / "fixtures"
STUB_MARKUP = (FIXTURES / "stub_encoder_output.svg").read_text(encoding="utf-8")
GOLDEN_MARKUP = (FIXTURES / "golden_wo_studio.svg").read_text(encoding="utf-8")


def normalize_ws(markup: str) -> str:
    return re.sub(r">\s+<", "><", markup.strip())


class StubEncoder:
    """Deterministic encoder mounting a fixed tree (10-unit modules on a 300 canvas)."""

    corner_square_modules: int | None = 7

    def __init__(self, markup: str = STUB_MARKUP, delay_s: float = 0.0) -> None:
        self.markup = markup
        self.delay_s = delay_s
        self.calls: list[EncoderOptions] = []

    def append(self, options: EncoderOptions, container: OffscreenContainer) -> None:
        self.calls.append(options)
        if self.delay_s > 0:
            timer = threading.Timer(self.delay_s, container.mount_markup, args=(self.markup,))
            timer.daemon = True
            timer.start()
            return
        container.mount_markup(self.markup)


class SilentEncoder:
    corner_square_modules: int | None = 7

    def __init__(self) -> None:
        self.calls = 0

    def append(self, options: EncoderOptions, container: OffscreenContainer) -> None:
        self.calls += 1


class FailingEncoder:
    corner_square_modules: int | None = 7

    def append(self, options: EncoderOptions, container: OffscreenContainer) -> None:
        container.fail(RuntimeError("symbol too large"))


class RaisingEncoder:
    corner_square_modules: int | None = 7

    def append(self, options: EncoderOptions, container: OffscreenContainer) -> None:
        raise RuntimeError("encoder blew up")


class ZeroCornerEncoder(StubEncoder):
    corner_square_modules: int | None = 0
