"""Download the raw FEMA and NOAA files the report reads.

Raw layer: data exactly as published, only decompressed.

    python -m flood_eda.download [output_root]

Files already on disk are skipped, so re-running only fetches what is
missing.
"""

from __future__ import annotations

import argparse
import gzip
import logging
import shutil
from pathlib import Path

import requests

logger = logging.getLogger(__name__)

OUTPUT_ROOT = Path("data/01_raw")

FEMA_BASE_URL = "https://www.fema.gov/api/open"
FEMA_FILES: dict[str, str] = {
    "DisasterDeclarationsSummaries.csv": f"{FEMA_BASE_URL}/v2/DisasterDeclarationsSummaries.csv",
    "FemaWebDisasterSummaries.csv": f"{FEMA_BASE_URL}/v1/FemaWebDisasterSummaries.csv",
}

NOAA_BASE_URL = "https://www.ncei.noaa.gov/pub/data/swdi/stormevents/csvfiles"

# Exact filenames from the NOAA directory listing (creation dates vary by year)
NOAA_FILES: dict[int, str] = {
    2020: "StormEvents_details-ftp_v1.0_d2020_c20260116.csv.gz",
    2021: "StormEvents_details-ftp_v1.0_d2021_c20250520.csv.gz",
}

CHUNK_SIZE = 8192


def _stream_to_file(url: str, target: Path, timeout: float = 60.0) -> None:
    """Download ``url`` to ``target`` via a ``.part`` file.

    ``target`` only appears once the body has been fully written, so an
    interrupted download never passes the "already exists" check.
    """
    partial = target.with_suffix(target.suffix + ".part")
    try:
        with requests.get(url, stream=True, timeout=timeout) as response:
            response.raise_for_status()
            with open(partial, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    f.write(chunk)
        partial.replace(target)
    finally:
        partial.unlink(missing_ok=True)

    logger.info(
        "Downloaded %s (%.1f MB)",
        target.name,
        target.stat().st_size / 1024 / 1024,
    )


def _decompress(gz_path: Path, csv_path: Path) -> None:
    partial = csv_path.with_suffix(csv_path.suffix + ".part")
    try:
        with gzip.open(gz_path, "rb") as f_in, open(partial, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
        partial.replace(csv_path)
    finally:
        partial.unlink(missing_ok=True)


def download_fema_tables(output_dir: Path) -> list[Path]:
    """Fetch the OpenFEMA declarations and disaster-summary CSV exports."""
    output_dir.mkdir(parents=True, exist_ok=True)

    paths: list[Path] = []
    for filename, url in FEMA_FILES.items():
        csv_path = output_dir / filename
        if csv_path.exists():
            logger.info("Already exists, skipping: %s", csv_path.name)
        else:
            logger.info("Downloading %s", url)
            _stream_to_file(url, csv_path)
        paths.append(csv_path)
    return paths


def download_storm_events(output_dir: Path, years: list[int] | None = None) -> list[Path]:
    """Fetch and decompress the NOAA storm-event details files.

    Args:
        output_dir: Where ``storm_events_details_<year>.csv`` lands.
        years: Subset of ``NOAA_FILES`` to fetch; all when omitted.

    Returns:
        Paths of the decompressed CSVs, in year order.
    """
    output_dir.mkdir(parents=True, exist_ok=True)

    paths: list[Path] = []
    for year in sorted(years or NOAA_FILES):
        filename = NOAA_FILES[year]
        gz_path = output_dir / filename
        csv_path = output_dir / f"storm_events_details_{year}.csv"

        if csv_path.exists():
            logger.info("[%d] Already exists, skipping: %s", year, csv_path.name)
            paths.append(csv_path)
            continue

        logger.info("[%d] Downloading %s", year, filename)
        _stream_to_file(f"{NOAA_BASE_URL}/{filename}", gz_path)

        # Decompress .gz -> .csv, then drop the .gz to save space
        try:
            _decompress(gz_path, csv_path)
        finally:
            gz_path.unlink(missing_ok=True)
        logger.info("[%d] Saved: %s", year, csv_path.name)
        paths.append(csv_path)

    return paths


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        description="Download the raw FEMA and NOAA files for the flood report"
    )
    parser.add_argument(
        "output_root",
        nargs="?",
        type=Path,
        default=OUTPUT_ROOT,
        help=f"Raw data folder (default: {OUTPUT_ROOT})",
    )
    args = parser.parse_args(argv)
    root = args.output_root

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    download_fema_tables(root / "fema")
    download_storm_events(root / "noaa")
    logger.info("Done.")


if __name__ == "__main__":
    main()
