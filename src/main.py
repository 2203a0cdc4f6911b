"""
main.py – CLI client for the energy-bill analyser.

Usage
-----
Analyse one bill photo:
    python -m src.main analyze --file "bills/enel_gen_feb.jpg"

Analyse every image in a directory:
    python -m src.main batch --dir "bills/"

Check the gateway:
    python -m src.main health

Common options (--api-url goes before the sub-command):
    --api-url "http://localhost:8000"   (default: $BILL_API_URL)
    --outdir "out/"
    --max-dimension 1600
    --quality 80
    --save-json
    --verbose

Each analysed bill is printed (unit KPIs, monthly history with F1/F2/F3,
annual summary) and exported as ``Analisi_Dettagliata_<fornitore>.csv``.
"""
from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Any

import requests
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from src.api_client import analyze_bill, check_health
from src.config import get_api_url
from src.constants import JPEG_QUALITY, MAX_IMAGE_DIMENSION, UNIT_EURO_PER_MONTH
from src.csv_export import export_filename, render_csv
from src.image_normalizer import normalize_image_file
from src.io_utils import collect_files, write_json, write_text
from src.schemas import BillData
from src.session import AnalysisSession

console = Console()


# ─────────────────────────────────────────────────────────────
# Rendering
# ─────────────────────────────────────────────────────────────

def _fmt(value: float | None, digits: int = 2) -> str:
    return "-" if value is None else f"{value:.{digits}f}"


def _band(value: float | None) -> str:
    # 0 and "not reported" look the same on the bill; show both as "-".
    return "-" if not value else f"{value:g}"


def print_bill(bill: BillData) -> None:
    """Render KPI cards, the history table and the annual summary."""
    unit = bill.unit_label
    kind = "GAS" if bill.is_gas else "LUCE"
    console.print(
        Panel(
            f"[bold]{bill.fornitore}[/]  ({kind})\n{bill.periodo_fatturazione or ''}",
            style="blue",
        )
    )

    kpis = Table(title="KPI unitari", show_header=True, header_style="bold")
    kpis.add_column("Materia Prima", justify="right")
    kpis.add_column("Oneri Generali", justify="right")
    kpis.add_column("Spese Rete", justify="right")
    kpis.add_column("Quota Fissa", justify="right")
    kpis.add_row(
        f"{_fmt(bill.prezzo_materia_prima_unitario, 4)} {bill.unit_price_label}",
        f"{_fmt(bill.oneri_generali_unitario, 4)} {bill.unit_price_label}",
        f"{_fmt(bill.spese_rete_unitario, 4)} {bill.unit_price_label}",
        f"{_fmt(bill.quota_fissa_mensile)} {UNIT_EURO_PER_MONTH}",
    )
    console.print(kpis)

    history = Table(title="Dettaglio storico per fasce", show_header=True, header_style="bold")
    history.add_column("Mese")
    history.add_column(f"Totale ({unit})", justify="right")
    history.add_column("F1", justify="right", style="blue")
    history.add_column("F2", justify="right", style="magenta")
    history.add_column("F3", justify="right")
    without_bands = 0
    for item in bill.storico_consumi:
        if item.has_band_detail:
            bands = (_band(item.f1), _band(item.f2), _band(item.f3))
        else:
            bands = ("-", "-", "-")
            without_bands += 1
        history.add_row(item.mese, f"{item.valore:g}", *bands)
    console.print(history)
    if without_bands:
        console.print(f"[dim]{without_bands} mesi senza dettaglio fasce[/]")

    summary = [
        f"Budget annuo proiettato: [bold]{bill.spesa_totale_annua_stima:.0f} €[/]",
        f"Consumo annuo: {_fmt(bill.consumo_annuo_totale, 0)} {unit}",
        f"Quota fissa annua: {_fmt(bill.quota_fissa_annua)} €",
    ]
    bands = bill.consumo_annuo_fasce
    total = (bands.f1 + bands.f2 + bands.f3) if bands else 0
    if bands and total > 0:
        summary.append(
            "Ripartizione fasce: "
            f"F1 {bands.f1 / total:.0%} · F2 {bands.f2 / total:.0%} · F3 {bands.f3 / total:.0%}"
        )
    console.print(Panel("\n".join(summary), title="Annuale", style="green"))


def _print_result_table(results: list[dict[str, Any]]) -> None:
    table = Table(title="Risultati", show_header=True, header_style="bold")
    table.add_column("File")
    table.add_column("Status")
    table.add_column("Fornitore")
    table.add_column("CSV")
    table.add_column("Secondi", justify="right")
    for r in results:
        ok = r["status"] == "success"
        table.add_row(
            r.get("file", ""),
            "[green]success[/]" if ok else "[red]failed[/]",
            r.get("fornitore") or "-",
            r.get("csv") or "-",
            f"{r.get('elapsed_seconds', 0.0):.1f}",
        )
    console.print(table)


# ─────────────────────────────────────────────────────────────
# Pipeline
# ─────────────────────────────────────────────────────────────

def process_single(
    image_path: Path,
    *,
    outdir: Path,
    api_url: str,
    session: AnalysisSession,
    max_dimension: int = MAX_IMAGE_DIMENSION,
    quality: int = JPEG_QUALITY,
    save_json: bool = False,
    verbose: bool = False,
) -> dict[str, Any]:
    """
    Normalise one image, send it to the gateway and export the result.

    Returns a summary dict with ``status``, ``file``, ``fornitore``, ``csv``.
    Failures are reported through *session* and never raised.
    """
    t_start = time.monotonic()
    summary: dict[str, Any] = {"status": "failed", "file": image_path.name}

    data_uri = normalize_image_file(image_path, max_dimension=max_dimension, quality=quality)
    if verbose:
        console.print(f"  [cyan]→[/] Payload ready ({len(data_uri):,} chars), calling {api_url} …")

    generation = session.begin()
    try:
        bill = analyze_bill(data_uri, api_url)
    except Exception as exc:  # noqa: BLE001
        session.fail(generation, exc)
        if verbose:
            console.print(f"  [red]✗[/] {exc}")
    else:
        session.complete(generation, bill)

    state = session.state
    summary["elapsed_seconds"] = time.monotonic() - t_start
    if state.result is None:
        summary["error"] = state.error
        return summary

    bill = state.result
    csv_path = write_text(outdir / export_filename(bill.fornitore), render_csv(bill))
    if save_json:
        write_json(outdir / f"{image_path.stem}.json", bill.model_dump())

    summary.update(status="success", fornitore=bill.fornitore, csv=str(csv_path))
    return summary


# ─────────────────────────────────────────────────────────────
# CLI commands
# ─────────────────────────────────────────────────────────────

def cmd_analyze(args: argparse.Namespace) -> int:
    """Handle: python -m src.main analyze --file ..."""
    image_path = Path(args.file)
    if not image_path.exists():
        console.print(f"[red]Error:[/] File not found: {image_path}")
        return 1

    session = AnalysisSession()
    console.print(Panel(f"[bold]Analisi[/]: {image_path.name}", style="blue"))

    with console.status("Analisi storica multidimensionale…"):
        result = process_single(
            image_path,
            outdir=Path(args.outdir),
            api_url=get_api_url(args.api_url),
            session=session,
            max_dimension=args.max_dimension,
            quality=args.quality,
            save_json=args.save_json,
            verbose=args.verbose,
        )

    if result["status"] != "success":
        console.print(f"[red]✗[/] {result['error']}")
        return 1

    print_bill(session.state.result)
    console.print(f"[green]✓[/] Report CSV: [bold]{result['csv']}[/]")
    return 0


def cmd_batch(args: argparse.Namespace) -> int:
    """Handle: python -m src.main batch --dir ..."""
    src_dir = Path(args.dir)
    if not src_dir.is_dir():
        console.print(f"[red]Error:[/] Directory not found: {src_dir}")
        return 1

    files = collect_files(src_dir)
    if not files:
        console.print(f"[yellow]Warning:[/] No image files found in {src_dir}")
        return 0

    api_url = get_api_url(args.api_url)
    session = AnalysisSession()
    console.print(
        Panel(
            f"[bold]Batch[/]: {len(files)} file(s) in [italic]{src_dir}[/]",
            style="blue",
        )
    )

    results: list[dict[str, Any]] = []
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task("Analisi …", total=len(files))
        for image_path in files:
            progress.update(task, description=f"[cyan]{image_path.name}[/]")
            results.append(
                process_single(
                    image_path,
                    outdir=Path(args.outdir),
                    api_url=api_url,
                    session=session,
                    max_dimension=args.max_dimension,
                    quality=args.quality,
                    save_json=args.save_json,
                    verbose=args.verbose,
                )
            )
            session.reset()
            progress.advance(task)

    _print_result_table(results)
    failed = sum(1 for r in results if r["status"] != "success")
    return 0 if failed == 0 else 1


def cmd_health(args: argparse.Namespace) -> int:
    """Handle: python -m src.main health"""
    api_url = get_api_url(args.api_url)
    try:
        payload = check_health(api_url)
    except requests.RequestException as exc:
        console.print(f"[red]✗[/] Gateway not reachable at {api_url}: {exc}")
        return 1

    table = Table(title=f"Health – {api_url}", show_header=False)
    for key, value in payload.items():
        table.add_row(key, str(value))
    console.print(table)
    return 0 if payload.get("status") == "ok" else 1


# ─────────────────────────────────────────────────────────────
# Argument parsing
# ─────────────────────────────────────────────────────────────

def _build_shared_args(parser: argparse.ArgumentParser) -> None:
    """Add arguments shared by the analysis sub-commands."""
    parser.add_argument(
        "--outdir",
        default="out",
        help="Directory for CSV reports (default: out/)",
    )
    parser.add_argument(
        "--max-dimension",
        type=int,
        default=MAX_IMAGE_DIMENSION,
        dest="max_dimension",
        help=f"Longest image edge sent upstream, in px (default: {MAX_IMAGE_DIMENSION})",
    )
    parser.add_argument(
        "--quality",
        type=int,
        default=JPEG_QUALITY,
        help=f"JPEG quality of the re-encoded image (default: {JPEG_QUALITY})",
    )
    parser.add_argument(
        "--save-json",
        action="store_true",
        default=False,
        dest="save_json",
        help="Also write the extracted BillData as <image>.json",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Print detailed progress to console",
    )


def build_parser() -> argparse.ArgumentParser:
    """Construct and return the top-level argument parser."""
    root = argparse.ArgumentParser(
        prog="python -m src.main",
        description="BillAI – analisi bollette luce/gas via Gemini.",
    )
    root.add_argument(
        "--api-url",
        default=None,
        dest="api_url",
        help="Gateway base URL (default: $BILL_API_URL or http://localhost:8000)",
    )
    sub = root.add_subparsers(dest="command", required=True)

    # ── analyze (single file) ──────────────────────────────────
    p_analyze = sub.add_parser("analyze", help="Analyse a single bill image.")
    p_analyze.add_argument(
        "--file",
        required=True,
        help='Path to the bill photo, e.g. "bills/enel.jpg"',
    )
    _build_shared_args(p_analyze)

    # ── batch (directory) ──────────────────────────────────────
    p_batch = sub.add_parser("batch", help="Analyse all images in a directory.")
    p_batch.add_argument(
        "--dir",
        required=True,
        help='Directory containing bill photos, e.g. "bills/"',
    )
    _build_shared_args(p_batch)

    # ── health (gateway status) ────────────────────────────────
    sub.add_parser("health", help="Show the gateway health payload.")

    return root


# ─────────────────────────────────────────────────────────────
# Entry point
# ─────────────────────────────────────────────────────────────

def main() -> None:
    """Parse arguments and dispatch to the correct sub-command."""
    logging.basicConfig(level=logging.WARNING, format="%(asctime)s %(levelname)-8s %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    dispatch = {
        "analyze": cmd_analyze,
        "batch": cmd_batch,
        "health": cmd_health,
    }
    handler = dispatch.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(handler(args))


if __name__ == "__main__":
    main()
