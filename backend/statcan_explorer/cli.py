from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import pandas as pd

from .catalog import Catalog
from .client import ProxyClient
from .config import Settings, configure_logging, settings
from .controller import ExplorerController, ExplorerState
from .schemas import VISUALIZATION_MODES
from .view import LoggingView


def _print_table(controller: ExplorerController) -> None:
    rows = [r.model_dump(by_alias=True) for r in controller.table_rows()]
    if not rows:
        print("No data available")
        return
    df = pd.DataFrame(rows, columns=["vectorId", "series", "date", "value"])
    df.columns = ["Vector ID", "Series", "Date", "Value"]
    print(df.to_string(index=False))


async def run_fetch(
    vectors: list[str],
    *,
    periods: int,
    mode: str,
    export_dir: Path | None = None,
    spec_path: Path | None = None,
    cfg: Settings | None = None,
) -> int:
    cfg = cfg or settings
    catalog = Catalog.from_path(cfg.catalog_path)
    view = LoggingView()

    async with ProxyClient(cfg) as client:
        controller = ExplorerController(ExplorerState(), client, view, settings=cfg)
        for v in vectors:
            try:
                ref = catalog.series_ref(v)
            except (KeyError, ValueError) as e:
                print(f"[fetch] {e}", file=sys.stderr)
                return 2
            controller.toggle_selection(ref.vector_id, ref.product_id, ref.label)

        controller.set_visualization_mode(mode)
        ok = await controller.fetch_observations(periods)
        if not ok:
            return 1
        await controller.wait_for_enrichment()

    if view.title:
        print(view.title)
    _print_table(controller)

    if spec_path is not None:
        spec_path.parent.mkdir(parents=True, exist_ok=True)
        spec_path.write_text(json.dumps(controller.chart_spec(), indent=2, ensure_ascii=False), encoding="utf-8")
        print(f"[fetch] chart spec written to {spec_path}")
    if export_dir is not None:
        path = controller.export_snapshot(export_dir)
        if path is not None:
            print(f"[fetch] snapshot exported to {path}")
    return 0


def run_search(query: str, cfg: Settings | None = None) -> int:
    cfg = cfg or settings
    for p in Catalog.from_path(cfg.catalog_path).search(query):
        print(f"{p.product_id}  {p.description}")
        for v in p.vectors:
            print(f"    {v.vector_id:<12} {v.text}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="statcan-explorer", description="Statistics Canada vector explorer")
    parser.add_argument("--log-level", default=None, help="overrides LOG_LEVEL")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the forwarding proxy")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)

    search = sub.add_parser("search", help="search the product catalog")
    search.add_argument("query", nargs="?", default="")

    fetch = sub.add_parser("fetch", help="fetch the latest observations for catalog vectors")
    fetch.add_argument("vectors", nargs="+", help="catalog vector ids, e.g. v41690973")
    fetch.add_argument("--periods", type=int, default=settings.default_periods)
    fetch.add_argument("--mode", choices=VISUALIZATION_MODES, default="line")
    fetch.add_argument("--export", type=Path, default=None, dest="export_dir", help="directory for the JSON snapshot")
    fetch.add_argument("--spec", type=Path, default=None, dest="spec_path", help="write the Vega-Lite spec here")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    if args.command == "serve":
        import uvicorn

        uvicorn.run("statcan_explorer.main:app", host=args.host, port=args.port)
        return 0
    if args.command == "search":
        return run_search(args.query)
    if args.periods < 1:
        print("[fetch] --periods must be a positive integer", file=sys.stderr)
        return 2
    return asyncio.run(
        run_fetch(
            args.vectors,
            periods=args.periods,
            mode=args.mode,
            export_dir=args.export_dir,
            spec_path=args.spec_path,
        )
    )


if __name__ == "__main__":
    sys.exit(main())
