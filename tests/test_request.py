from __future__ import annotations

import unittest

from sketchqr_core.errors import InvalidRequestError
from sketchqr_core.request import DEFAULT_OPTIONS, QRRenderRequest, merge_options


class QRRenderRequestTests(unittest.TestCase):
    def test_valid_request_exposes_drawable(self) -> None:
        request = QRRenderRequest(url="https://wo.studio", color="#ff0000", size=150, margin=10)
        self.assertEqual(request.drawable, 130)

    def test_any_css_color_string_is_accepted(self) -> None:
        for color in ("rgba(0, 0, 0, 0.5)", "rgb(0 0 0)", "currentColor", "transparent", "hsl(0 100% 50%)", "#0008"):
            with self.subTest(color=color):
                request = QRRenderRequest(url="https://wo.studio", color=color, size=100)
                self.assertEqual(request.color, color)

    def test_margin_must_leave_drawable_area(self) -> None:
        with self.assertRaises(InvalidRequestError):
            QRRenderRequest(url="https://wo.studio", color="#000", size=10, margin=6)
        with self.assertRaises(InvalidRequestError):
            QRRenderRequest(url="https://wo.studio", color="#000", size=10, margin=5)

    def test_rejects_bad_fields(self) -> None:
        bad = [
            {"url": "", "color": "#000", "size": 100, "margin": 0},
            {"url": "   ", "color": "#000", "size": 100, "margin": 0},
            {"url": "x", "color": "#000", "size": 0, "margin": 0},
            {"url": "x", "color": "#000", "size": -5, "margin": 0},
            {"url": "x", "color": "#000", "size": True, "margin": 0},
            {"url": "x", "color": "#000", "size": 100, "margin": -1},
            {"url": "x", "color": "", "size": 100, "margin": 0},
            {"url": "x", "color": "   ", "size": 100, "margin": 0},
            {"url": "x", "color": None, "size": 100, "margin": 0},
        ]
        for fields in bad:
            with self.subTest(fields=fields):
                with self.assertRaises(InvalidRequestError):
                    QRRenderRequest(**fields)

    def test_from_options_merges_defaults_under_overrides(self) -> None:
        request = QRRenderRequest.from_options({"color": "#123456", "margin": "4"}, defaults={"size": 200})
        self.assertEqual(request.url, DEFAULT_OPTIONS["url"])
        self.assertEqual(request.color, "#123456")
        self.assertEqual(request.size, 200)
        self.assertEqual(request.margin, 4)

    def test_from_options_rejects_non_integer_size(self) -> None:
        with self.assertRaises(InvalidRequestError):
            QRRenderRequest.from_options({"size": "big"})
        with self.assertRaises(InvalidRequestError):
            QRRenderRequest.from_options({"size": 12.5})

    def test_merge_drops_unknown_keys_and_none(self) -> None:
        merged = merge_options({"size": None, "extra": 1, "url": "https://a.b"})
        self.assertEqual(set(merged), {"url", "color", "size", "margin"})
        self.assertEqual(merged["size"], DEFAULT_OPTIONS["size"])
        self.assertEqual(merged["url"], "https://a.b")

    def test_as_options_round_trips(self) -> None:
        request = QRRenderRequest(url="https://wo.studio", color="blue", size=64, margin=2)
        self.assertEqual(QRRenderRequest.from_options(request.as_options()), request)


if __name__ == "__main__":
    unittest.main()
