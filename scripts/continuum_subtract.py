"""Subtract the continuum from a narrowband image.

Workflow:
1. Load narrowband, broadband (optionally one channel of a colour image) and mask
2. Find the reduction factor mue by the blackness scan
3. Write the emission image as FITS, plus a stretched PNG preview
4. Optionally write the broadband enhanced by the emission; for a colour
   broadband the emission goes into the selected channel of the colour image
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from continuum_subtraction import (
    ContinuumReducer,
    ContinuumSubtractor,
    FITSLoader,
    ImageExporter,
    PreconditionError,
    ReductionSettings,
    ScanContext,
    Stretcher,
)
from continuum_subtraction.config import DEFAULT_STEP_SIZE, LEGACY_STEP_SIZE

logger = logging.getLogger(__name__)


def setup_logging(log_file: str = None, verbose: bool = False) -> None:
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Continuum subtraction of a narrowband image by a broadband image"
    )
    parser.add_argument('narrowband', help='Narrowband FITS file')
    parser.add_argument('broadband', help='Broadband FITS file (mono or colour)')
    parser.add_argument('--mask', help='Star mask FITS file; pixels above its mean are excluded')
    parser.add_argument(
        '--channel', type=int, default=0,
        help='Channel of a colour broadband image: 0=R, 1=G, 2=B (default: 0)'
    )
    parser.add_argument(
        '--limit', type=int, default=90,
        help='Percentage of black pixels ending the scan, 50-99 (default: 90)'
    )
    parser.add_argument(
        '--step-size', type=float, default=DEFAULT_STEP_SIZE,
        help=f'Scan increment (default: {DEFAULT_STEP_SIZE}, legacy: {LEGACY_STEP_SIZE})'
    )
    parser.add_argument(
        '--contingent', type=float, default=None,
        help='Also write the broadband plus emission times this weight '
             '(colour images get it in --channel, other channels unchanged)'
    )
    parser.add_argument('-o', '--output', help='Output FITS path (default: <narrowband>_<broadband>.fits)')
    parser.add_argument('--no-preview', action='store_true', help='Skip the PNG preview')
    parser.add_argument('--log-file', help='Also write the log to this file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """Run a continuum subtraction from the command line."""
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    try:
        settings = ReductionSettings(
            limit_percent=args.limit,
            step_size=args.step_size,
            contingent=args.contingent if args.contingent is not None else 1.0
        )
    except ValueError as e:
        logger.error(f"Invalid settings: {e}")
        return 2

    loader = FITSLoader()
    narrowband = loader.load(args.narrowband)
    broadband = loader.load(args.broadband, channel=args.channel)
    mask = loader.load(args.mask) if args.mask else None

    def report(fraction: float) -> None:
        logger.debug(f"Black pixels: {fraction * 100:.1f}%")

    reducer = ContinuumReducer(settings)
    context = ScanContext(progress_callback=report, event_interval=settings.event_interval)
    try:
        result = reducer.reduce(narrowband, broadband, mask=mask, context=context)
    except PreconditionError as e:
        logger.error(f"Invalid input images: {e}")
        return 2
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130

    if not result.ok:
        logger.error(f"CS processing returned no solution: {result.message}")
        return 1

    subtractor = ContinuumSubtractor()
    emission = subtractor.apply(narrowband.data, broadband.data, result)
    reducer.history.record(
        'subtract', {'mue': round(result.effective_mue, 8)}, 'ContinuumSubtractor'
    )

    output = Path(args.output) if args.output else Path(args.narrowband).with_name(
        f"{narrowband.name}_{broadband.name}.fits"
    )
    exporter = ImageExporter()
    exporter.save_fits(
        emission,
        output,
        header=narrowband.header,
        history=reducer.history,
        keywords={
            'CS_MUE': (result.effective_mue, 'Continuum reduction factor'),
            'CS_NB': (narrowband.name, 'Narrowband image'),
            'CS_BB': (broadband.name, 'Broadband image'),
        }
    )

    if not args.no_preview:
        stretcher = Stretcher(settings.shadows_clipping, settings.target_background)
        exporter.save_png(stretcher.stretch(emission), output.with_suffix('.png'))

    if args.contingent is not None:
        full = loader.load_cube(args.broadband)
        if full.data.ndim == 3:
            enhanced = subtractor.integrate_rgb(
                full.data, {broadband.channel: (emission, settings.contingent)}
            )
        else:
            enhanced = subtractor.integrate(full.data, emission, settings.contingent)
        reducer.history.record(
            'integrate',
            {'channel': broadband.channel, 'contingent': settings.contingent},
            'ContinuumSubtractor'
        )
        keywords = {'CS_CONT': (settings.contingent, 'Emission contingent')}
        if broadband.channel is not None:
            keywords['CS_CHAN'] = (broadband.channel, 'Channel receiving the emission')
        exporter.save_fits(
            enhanced,
            output.with_name(f"{output.stem}_integrated.fits"),
            header=full.header,
            history=reducer.history,
            keywords=keywords,
            emission=False
        )

    logger.info(f"Reduction factor mue: {result.effective_mue:.8f}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
