"""
Replay runner for recorded gaze streams.

This module provides a command-line interface that feeds a recorded sample
file through a tracking session over a document layout and writes the
attention report.
"""
import argparse
import logging
from typing import Optional

import pandas as pd

from report.export import build_bundle, build_table, table_to_csv
from tracking.fixations import (
    DISPERSION_THRESHOLD, LOOKBACK_WINDOW, MIN_FIXATION_DURATION, FixationClassifier
)
from tracking.io import load_layout, load_samples, save_bytes
from tracking.session import GazeSession, TrackingMode


def setup_logging(verbosity: int = 0) -> None:
    """
    Set up logging with appropriate verbosity.

    Parameters:
    -----------
    verbosity : int, optional
        0 = WARNING, 1 = INFO, 2 = DEBUG, by default 0
    """
    log_levels = {
        0: logging.WARNING,
        1: logging.INFO,
        2: logging.DEBUG
    }
    level = log_levels.get(verbosity, logging.DEBUG)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def replay(session: GazeSession, samples: pd.DataFrame) -> int:
    """
    Feed recorded samples through a session in timestamp order.

    Parameters:
    -----------
    session : GazeSession
        Session with a loaded document
    samples : pd.DataFrame
        Samples with 'x', 'y' and 't' columns

    Returns:
    --------
    int
        Number of fixations emitted
    """
    n_fixations = 0
    ordered = samples.sort_values('t', kind='stable')
    for x, y, t in zip(ordered['x'], ordered['y'], ordered['t']):
        if session.on_gaze(float(x), float(y), float(t)) is not None:
            n_fixations += 1
    return n_fixations


def run_pipeline(
    layout_path: str,
    samples_path: str,
    bundle_output: Optional[str] = None,
    table_output: Optional[str] = None,
    mode: TrackingMode = TrackingMode.FIXATION,
    dispersion: float = DISPERSION_THRESHOLD,
    min_duration: float = MIN_FIXATION_DURATION,
    window: float = LOOKBACK_WINDOW,
    sample_rate: float = 30.0,
    include_transitions: bool = False,
) -> GazeSession:
    """
    Run the replay pipeline.

    Parameters:
    -----------
    layout_path : str
        Path to the document layout JSON
    samples_path : str
        Path to the recorded samples CSV
    bundle_output : Optional[str], optional
        Path to write the zip bundle, by default None
    table_output : Optional[str], optional
        Path to write the attention table CSV, by default None
    mode : TrackingMode, optional
        Fixation or raw-density mode, by default TrackingMode.FIXATION
    dispersion, min_duration, window : float, optional
        Fixation classifier parameters
    sample_rate : float, optional
        Rate used when the samples carry no timestamps, by default 30.0
    include_transitions : bool, optional
        Add the region transition plot to the bundle, by default False

    Returns:
    --------
    GazeSession
        The session after replay
    """
    logging.info(f"Loading layout from {layout_path}")
    layout, regions = load_layout(layout_path)

    logging.info(f"Loading samples from {samples_path}")
    samples = load_samples(samples_path, sample_rate=sample_rate)

    session = GazeSession(mode=mode, classifier=FixationClassifier(dispersion, min_duration, window))
    session.load_document(layout, regions)

    n_fixations = replay(session, samples)
    logging.info(f"Replayed {len(samples)} samples, {n_fixations} fixations")

    if table_output:
        logging.info(f"Saving attention table to {table_output}")
        save_bytes(table_to_csv(build_table(session)), table_output)

    if bundle_output:
        logging.info(f"Saving bundle to {bundle_output}")
        bundle = build_bundle(session, include_transitions=include_transitions)
        save_bytes(bundle.to_zip(), bundle_output)

    return session


def main():
    """
    Main entry point for the replay pipeline.
    """
    parser = argparse.ArgumentParser(description="Reading attention replay")
    parser.add_argument("--layout", type=str, required=True,
                        help="Document layout JSON file")
    parser.add_argument("--samples", type=str, required=True,
                        help="Recorded gaze samples CSV file")
    parser.add_argument("--output", type=str, default="attention_report.zip",
                        help="Path to save the zip bundle")
    parser.add_argument("--table-output", type=str,
                        help="Path to save the attention table CSV")
    parser.add_argument("--mode", choices=[m.value for m in TrackingMode],
                        default=TrackingMode.FIXATION.value,
                        help="Log fixations or raw samples")
    parser.add_argument("--dispersion", type=float, default=DISPERSION_THRESHOLD,
                        help="Maximum dispersion for fixation detection")
    parser.add_argument("--min-duration", type=float, default=MIN_FIXATION_DURATION,
                        help="Minimum fixation duration (ms)")
    parser.add_argument("--window", type=float, default=LOOKBACK_WINDOW,
                        help="Lookback window (ms)")
    parser.add_argument("--sample-rate", type=float, default=30.0,
                        help="Sample rate (Hz) assumed when timestamps are missing")
    parser.add_argument("--transitions", action="store_true",
                        help="Include the region transition matrix plot")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity (can be used multiple times)")

    args = parser.parse_args()

    # Set up logging
    setup_logging(args.verbose)

    # Run the pipeline
    try:
        run_pipeline(
            layout_path=args.layout,
            samples_path=args.samples,
            bundle_output=args.output,
            table_output=args.table_output,
            mode=TrackingMode(args.mode),
            dispersion=args.dispersion,
            min_duration=args.min_duration,
            window=args.window,
            sample_rate=args.sample_rate,
            include_transitions=args.transitions,
        )
        logging.info("Replay completed successfully")
    except Exception as e:
        logging.error(f"Error in replay pipeline: {e}", exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    exit(main())
