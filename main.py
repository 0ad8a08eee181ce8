"""
Main entry point for vidproc.

This script reads the video files of a folder, stabilizes them and joins them
(using FFmpeg) into a single MP4 video file, named out.mp4 by default.

Usage: cd to the folder containing the input videos and run

    vidproc [outputVideoFilename]

Depending on the input sizes this can take a long time. If a run is halted
midway, re-running it restarts from the video that was incomplete on the last
run, as long as the 'vidproc' sub-folder is left in place. Once the output has
been created, that sub-folder may be safely deleted.

Requirements: FFmpeg built with vid.stab, input videos of identical resolution,
and input filenames that sort in the order they must be joined.
"""

import signal
import sys
from pathlib import Path
from typing import List, Optional

from loguru import logger

from vidproc.cli import get_args
from vidproc.config.common import EXIT_FAILURE, EXIT_INTERRUPTED, LOGGER_FORMAT
from vidproc.domain.exceptions import ExternalToolException, RunInterrupted
from vidproc.pipeline.stabilize_pipeline import StabilizeJoinPipeline
from vidproc.utils.module_updater import Modules


# Configure the logger for initial setup.
# The level is overridden later by command-line arguments.
logger.remove()
log_level = "DEBUG" if __debug__ else "INFO"
logger.add(sys.stderr, level=log_level, format=LOGGER_FORMAT)


def _raise_interrupt(signum, frame):
    raise RunInterrupted(f"Received signal {signal.Signals(signum).name}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Runs vidproc and returns the process exit code.

    1. Parses command-line arguments and re-configures the logger.
    2. Verifies that FFmpeg with vid.stab is available.
    3. Runs the stabilize-and-join pipeline.

    SIGTERM is turned into an exception so that it unwinds like Ctrl-C: the
    running FFmpeg process is terminated and the temp files are removed before
    the process exits.
    """
    args = get_args(argv)

    logger.remove()
    logger.add(sys.stderr, level=args.log_level, format=LOGGER_FORMAT)
    logger.debug(f"Parsed arguments: {args}")

    signal.signal(signal.SIGTERM, _raise_interrupt)

    try:
        if not args.skip_ffmpeg_check:
            Modules.run_all()

        pipeline = StabilizeJoinPipeline(
            args.input_dir,
            Path(args.output),
            probe_inputs=not args.no_probe,
        )
        run_result = pipeline.run()
    except ExternalToolException as e:
        logger.error(str(e))
        return EXIT_FAILURE
    except (KeyboardInterrupt, RunInterrupted) as e:
        logger.warning(f"Interrupted: {str(e) or 'keyboard interrupt'}. Checkpoints are kept for the next run.")
        return EXIT_INTERRUPTED
    except Exception:
        logger.exception("Unexpected error")
        return EXIT_FAILURE

    if not run_result.ok:
        logger.error(f"vidproc finished with status '{run_result.status.value}'.")
    return run_result.exit_code


if __name__ == "__main__":
    sys.exit(main())
