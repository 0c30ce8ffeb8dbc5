from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from sketchqr_core import GenerationError, QRRenderRequest, QRVectorNormalizer
from sketchqr_core.render import export_preview_png
from sketchqr_plugin import InMemoryDocument, SettingsStore, load_config


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="sketchqr")
    parser.add_argument("--config", type=Path, default=None, help="Path to sketchqr.toml.")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="Write the normalized QR SVG fragment.")
    _add_request_args(gen)
    gen.add_argument("--out", type=Path, default=None, help="Output file. Default: stdout.")
    gen.add_argument("--save-settings", action="store_true", help="Persist the options as last used.")

    preview = sub.add_parser("preview", help="Rasterize the normalized QR fragment to PNG.")
    _add_request_args(preview)
    preview.add_argument("--out", type=Path, required=True)
    preview.add_argument("--scale", type=float, default=1.0)
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(levelname)s %(name)s: %(message)s")
    config = load_config(args.config)
    settings = SettingsStore(config.resolved_settings_path())
    normalizer = QRVectorNormalizer(
        working_size=config.working_size,
        settle_timeout_s=config.settle_timeout_s,
    )

    try:
        request = QRRenderRequest.from_options(
            {"url": args.url, "color": args.color, "size": args.size, "margin": args.margin},
            defaults=settings.load(),
        )
        svg = normalizer.generate(request)
    except GenerationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    if args.command == "generate":
        # Round-trip through the host-document model to check the fragment is self-contained.
        group = InMemoryDocument().insert_svg(svg, name="QR Code")
        if args.out is None:
            print(svg)
        else:
            args.out.parent.mkdir(parents=True, exist_ok=True)
            args.out.write_text(svg, encoding="utf-8")
            print(f"wrote {args.out} layers={group.layer_count}")
        if args.save_settings:
            settings.save(request.as_options())
        return 0

    if args.command == "preview":
        path = export_preview_png(svg, args.out, scale=args.scale)
        print(f"wrote {path}")
        return 0

    raise RuntimeError(f"unsupported command: {args.command}")


def _add_request_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--url", default=None)
    parser.add_argument("--color", default=None)
    parser.add_argument("--size", type=int, default=None)
    parser.add_argument("--margin", type=int, default=None)


if __name__ == "__main__":
    sys.exit(main())
