import argparse
import sys
import threading
import time
from typing import Optional

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from config.config import Config
from models.results import AuditResult, BOMResult, CodeResult, PartSearchResult, TaskOutcome
from models.task import Attachment
from orchestrator.core import SchematicOrchestrator
from utils.exporters import bom_to_csv, cad_link_for, cad_search_links, write_firmware

STATUS_MARKERS = {'pass': '[PASS]', 'fail': '[FAIL]', 'warning': '[WARN]', 'info': '[INFO]'}


def initialize_orchestrator(config: Config) -> SchematicOrchestrator:
    """
    Build the orchestrator on top of the Gemini client.

    Raises:
        ValueError: If GOOGLE_GEMINI_API_KEY is missing or the model registry is invalid
    """
    from api.google_gemini_client import GeminiClient
    from orchestrator.model_registry import ModelRegistry

    if not config.validate():
        raise ValueError("GOOGLE_GEMINI_API_KEY not found in environment variables")

    registry = ModelRegistry.from_yaml(config.MODEL_REGISTRY_PATH).with_overrides(
        reasoning_model=config.REASONING_MODEL,
        search_model=config.SEARCH_MODEL,
        thinking_budget=config.THINKING_BUDGET,
    )
    client = GeminiClient(
        api_key=config.GOOGLE_GEMINI_API_KEY,
        registry=registry,
        timeout_s=config.BACKEND_TIMEOUT_S,
    )
    print(f"Initialized {config.get_model_info()}")
    return SchematicOrchestrator(client)


def show_loading_animation(stop_event: threading.Event, label: str = 'Thinking') -> None:
    """
    Show a loading animation in the console.

    Args:
        stop_event: A threading.Event that will be set to stop the animation
        label: Text shown before the spinner
    """
    while not stop_event.is_set():
        for char in '|/-\\':
            if stop_event.is_set():
                break
            sys.stdout.write(f'\r\033[93m{label} {char}\033[0m')
            sys.stdout.flush()
            time.sleep(0.1)

    # Clear the loading line
    sys.stdout.write('\r' + ' ' * (len(label) + 10) + '\r')
    sys.stdout.flush()


def run_with_spinner(fn, label: str):
    stop_animation = threading.Event()
    loading_thread = threading.Thread(target=show_loading_animation, args=(stop_animation, label))
    loading_thread.daemon = True
    loading_thread.start()
    try:
        return fn()
    finally:
        stop_animation.set()
        loading_thread.join()


def print_sources(outcome: TaskOutcome) -> None:
    if not outcome.sources:
        return
    print('\nSources:')
    for source in outcome.sources:
        print(f'  - {source.title}: {source.uri}')


def print_audit(result: AuditResult) -> None:
    print(f'\n=== Audit ===\n{result.summary}\n')
    for section in result.sections:
        marker = STATUS_MARKERS.get(section.status, f'[{section.status.upper()}]')
        print(f'{marker} {section.title}')
        print(f'    {section.content}')
        if section.correct_data:
            print(f'    Expected: {section.correct_data}')
        if section.datasheet_page_ref is not None:
            print(f'    Datasheet page: {section.datasheet_page_ref:g}')
    if result.suggested_fixes:
        print('\nSuggested fixes:')
        for fix in result.suggested_fixes:
            print(f'  - {fix}')


def print_bom(result: BOMResult) -> None:
    print('\n=== Bill of Materials ===')
    for item in result.items:
        print(
            f'{item.quantity:g} x {item.part_number} ({item.manufacturer}) '
            f'[{item.designators}] {item.estimated_unit_price:.4f} / {item.total_price:.2f}'
        )
        print(f'    {item.description}')
        print(f'    CAD: {cad_link_for(item)}')
    print(f'\nTotal estimated cost: {result.total_estimated_cost:.2f} {result.currency}')


def print_part(result: PartSearchResult) -> None:
    print(f'\n=== {result.part_number} ({result.manufacturer}) ===')
    print(result.description)
    if result.specs:
        print('\nSpecs:')
        for key, value in result.specs.items():
            print(f'  {key}: {value}')
    if result.datasheet_uri:
        print(f'\nDatasheet: {result.datasheet_uri}')
    links = result.cad_links
    if links.model3d or links.footprint:
        print(f'\nCAD ({links.provider or "unknown provider"}):')
        if links.model3d:
            print(f'  3D model: {links.model3d}')
        if links.footprint:
            print(f'  Footprint: {links.footprint}')
    else:
        print('\nCAD search:')
        for name, url in cad_search_links(result.part_number).items():
            print(f'  {name}: {url}')
    if result.pricing:
        print('\nPricing:')
        for offer in result.pricing:
            print(f'  {offer.distributor}: {offer.price} (stock {offer.stock}) {offer.link}')
    if result.alternatives:
        print(f'\nAlternatives: {", ".join(result.alternatives)}')


def print_code(result: CodeResult, out_dir: Optional[str]) -> None:
    print(f'\n=== {result.filename} ({result.language}, {result.architecture}) ===')
    print(result.description)
    if out_dir:
        path = write_firmware(result, out_dir)
        print(f'\nWrote {path}')
    else:
        print()
        print(result.code)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Schematic auditor')
    sub = parser.add_subparsers(dest='command', required=True)

    audit = sub.add_parser('audit', help='Audit a schematic')
    audit.add_argument('schematic', help='Schematic image or PDF')
    audit.add_argument('--part', default='', help='Part number to verify (blank = full scan)')
    audit.add_argument('--datasheet', help='Datasheet or pinout image/PDF for the part')
    audit.add_argument('--notes', default='', help='Design notes')

    bom = sub.add_parser('bom', help='Extract a bill of materials')
    bom.add_argument('schematic', help='Schematic image or PDF')
    bom.add_argument('--csv', dest='csv_path', help='Write the BOM as CSV to this path')

    search = sub.add_parser('search', help='Look up a part')
    search.add_argument('query', help='Part number or keywords')
    search.add_argument('--no-datasheet', action='store_true', help='Skip the datasheet lookup')
    search.add_argument('--no-cad', action='store_true', help='Skip CAD model links')
    search.add_argument('--no-pricing', action='store_true', help='Skip distributor pricing')

    firmware = sub.add_parser('firmware', help='Generate firmware for the schematic')
    firmware.add_argument('schematic', help='Schematic image or PDF')
    firmware.add_argument('--notes', default='', help='Firmware requirements')
    firmware.add_argument('--pin-mapping', default='', help='Manual pin mapping, overrides the schematic')
    firmware.add_argument('--out', dest='out_dir', help='Directory to write the code file into')

    return parser


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        orchestrator = initialize_orchestrator(Config())

        if args.command == 'audit':
            datasheet = Attachment.from_path(args.datasheet) if args.datasheet else None
            outcome = run_with_spinner(
                lambda: orchestrator.run_audit(
                    Attachment.from_path(args.schematic),
                    target_part=args.part,
                    datasheet=datasheet,
                    notes=args.notes,
                ),
                'Auditing',
            )
        elif args.command == 'bom':
            outcome = run_with_spinner(
                lambda: orchestrator.run_bom(Attachment.from_path(args.schematic)), 'Extracting BOM'
            )
        elif args.command == 'search':
            outcome = run_with_spinner(
                lambda: orchestrator.run_part_search(
                    args.query,
                    want_datasheet=not args.no_datasheet,
                    want_cad=not args.no_cad,
                    want_pricing=not args.no_pricing,
                ),
                'Searching',
            )
        else:
            outcome = run_with_spinner(
                lambda: orchestrator.run_firmware_gen(
                    Attachment.from_path(args.schematic),
                    notes=args.notes,
                    manual_pin_mapping=args.pin_mapping,
                ),
                'Generating firmware',
            )
    except (OSError, ValueError) as e:
        print(f'\nError: {str(e)}', file=sys.stderr)
        return 1

    if outcome.is_failed:
        print(f'\n{outcome.message}', file=sys.stderr)
        return 1

    result = outcome.result
    if outcome.is_ambiguous:
        print(f'\n=== Audit: part not matched ===\n{result.summary}')
        print('\nHint: pass --datasheet with the part\'s datasheet or pinout and run again.')
    elif isinstance(result, AuditResult):
        print_audit(result)
    elif isinstance(result, BOMResult):
        print_bom(result)
        if args.csv_path:
            with open(args.csv_path, 'w', encoding='utf-8', newline='') as f:
                f.write(bom_to_csv(result))
            print(f'\nWrote {args.csv_path}')
    elif isinstance(result, PartSearchResult):
        print_part(result)
    elif isinstance(result, CodeResult):
        print_code(result, args.out_dir)

    print_sources(outcome)
    return 0


if __name__ == "__main__":
    sys.exit(main())
