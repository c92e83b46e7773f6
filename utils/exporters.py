"""File exports for BOM and firmware results."""

import csv
import io
from datetime import date
from pathlib import Path
from urllib.parse import quote

from models.results import BOMItem, BOMResult, CodeResult

CSV_HEADERS = [
    "Part Number",
    "Description",
    "Manufacturer",
    "Qty",
    "Designators",
    "Unit Price (USD)",
    "Total Price (USD)",
    "CAD Link",
]

SNAPEDA_SEARCH_URL = "https://www.snapeda.com/search/?q="
OCTOPART_SEARCH_URL = "https://octopart.com/search?q="


def _field(value: str, *, always_quote: bool = False) -> str:
    """One CSV field, escaped by the csv module; quoted only when needed unless asked."""
    buffer = io.StringIO()
    quoting = csv.QUOTE_ALL if always_quote else csv.QUOTE_MINIMAL
    csv.writer(buffer, quoting=quoting, lineterminator="").writerow([value])
    return buffer.getvalue()


def _format_quantity(quantity: float) -> str:
    if float(quantity).is_integer():
        return str(int(quantity))
    return str(quantity)


def cad_link_for(item: BOMItem) -> str:
    """Best CAD link for a BOM row: 3D model, then footprint, then a SnapEDA search."""
    links = item.cad_links
    if links.model3d:
        return links.model3d
    if links.footprint:
        return links.footprint
    return f"{SNAPEDA_SEARCH_URL}{item.part_number}"


def bom_to_csv(result: BOMResult) -> str:
    rows = [",".join(CSV_HEADERS)]
    for item in result.items:
        rows.append(
            ",".join(
                [
                    _field(item.part_number),
                    _field(item.description, always_quote=True),
                    _field(item.manufacturer),
                    _format_quantity(item.quantity),
                    _field(item.designators, always_quote=True),
                    f"{item.estimated_unit_price:.4f}",
                    f"{item.total_price:.2f}",
                    _field(cad_link_for(item)),
                ]
            )
        )
    return "\n".join(rows)


def bom_export_filename(on: date | None = None) -> str:
    on = on or date.today()
    return f"bom_export_{on.isoformat()}.csv"


def firmware_file(result: CodeResult) -> tuple[str, bytes]:
    """Return the declared filename and the code bytes, unmodified."""
    return Path(result.filename).name or "firmware.txt", result.code.encode("utf-8")


def write_firmware(result: CodeResult, directory: str | Path) -> Path:
    """
    Write the generated code into `directory`.

    Only the base name of the declared filename is used, so a reply cannot
    place the file outside `directory`.
    """
    filename, payload = firmware_file(result)
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    target = target_dir / filename
    target.write_bytes(payload)
    return target


def cad_search_links(part_number: str) -> dict[str, str]:
    encoded = quote(part_number, safe="")
    return {
        "snapeda": f"{SNAPEDA_SEARCH_URL}{encoded}",
        "octopart": f"{OCTOPART_SEARCH_URL}{encoded}",
    }
