"""
The operations offered to the user.

Flash: probe -> erase -> write, each step only runs if the previous succeeded.
Nothing is erased or written before the probe confirmed a connection.
"""

from __future__ import annotations

import enum
import logging
import time

from .lib_session import FlashSession, LogSink
from .util_baseclasses import FirmwareMissingException, LaunchFailureException
from .util_constants import PROBE_MARKER, OperationOutcome, ProcessOutcome
from .util_esptool import args_erase, args_probe, args_write
from .util_firmware import extract_firmware

logger = logging.getLogger(__name__)


class ConnectionStatus(enum.StrEnum):
    CONNECTED = "connected"
    TIMED_OUT = "timed_out"
    NO_MARKER = "no_marker"
    "The probe exited but the output lacks PROBE_MARKER"

    @property
    def is_connected(self) -> bool:
        return self is ConnectionStatus.CONNECTED


def check_connection(
    session: FlashSession,
    log_sink: LogSink | None = None,
) -> tuple[ConnectionStatus, str]:
    """
    Return the status and the output of the probe.

    The user is told 'Connection failed.' for TIMED_OUT as for NO_MARKER,
    the distinction is for the logs only.
    """
    result = session.probe_result(
        arguments=args_probe(session.config),
        timeout_ms=session.probe_timeout_ms,
    )
    text = result.stdout
    if log_sink is not None:
        for line in text.splitlines():
            log_sink.append(line)

    if result.outcome is ProcessOutcome.TIMED_OUT:
        status = ConnectionStatus.TIMED_OUT
    elif text.strip() == "" or PROBE_MARKER not in text.upper():
        status = ConnectionStatus.NO_MARKER
    else:
        status = ConnectionStatus.CONNECTED

    logger.info(
        f"Probe {session.config.port}: {status} (outcome={result.outcome}, returncode={result.returncode})"
    )
    return status, text


def _flash(session: FlashSession, log_sink: LogSink) -> OperationOutcome:
    display = session.display

    display.info("\nChecking connection...")
    status, text = check_connection(session, log_sink=log_sink)
    if not status.is_connected:
        display.error("Connection failed.")
        if text:
            display.echo(text.rstrip("\n"))
        return OperationOutcome.CONNECTIVITY_FAILURE
    display.success("Connected.")

    try:
        filename_firmware = extract_firmware(
            chip=session.config.chip,
            directory=session.directory_firmware,
        )
    except FirmwareMissingException as e:
        display.error(str(e))
        return OperationOutcome.RESOURCE_MISSING

    begin_s = time.monotonic()

    display.info("\nErasing flash...")
    if not session.run_step(args_erase(session.config), log_sink):
        display.error("Flashing failed: erase did not succeed.")
        return OperationOutcome.STEP_FAILURE

    display.info("\nWriting firmware...")
    if not session.run_step(args_write(session.config, filename_firmware), log_sink):
        display.error("Flashing failed: write did not succeed.")
        return OperationOutcome.STEP_FAILURE

    display.success(f"\nDone in {time.monotonic() - begin_s:0.2f}s")
    return OperationOutcome.SUCCESS


def do_flash(session: FlashSession) -> OperationOutcome:
    """
    Flash MicroPython onto the chip.

    Failures are reported on the display and returned, they never raise.
    """
    assert isinstance(session, FlashSession)
    session.progress.reset()
    with session.open_log() as log_sink:
        logger.info(f"Flash {session.config}: logfile {log_sink.filename}")
        try:
            outcome = _flash(session, log_sink)
        except LaunchFailureException as e:
            session.display.error(str(e))
            outcome = OperationOutcome.LAUNCH_FAILURE

    if outcome.is_success:
        logger.info(f"[COLOR_SUCCESS]Flash {session.config.port}: {outcome}")
    else:
        logger.info(f"[COLOR_FAILED]Flash {session.config.port}: {outcome}")
    return outcome


def do_full_erase(session: FlashSession) -> OperationOutcome:
    """
    Erase the entire flash. No probe: esptool fails itself if the chip does not answer.
    """
    assert isinstance(session, FlashSession)
    session.progress.reset()
    display = session.display
    with session.open_log() as log_sink:
        logger.info(f"Full erase {session.config}: logfile {log_sink.filename}")
        display.info("\nErasing entire flash...")
        try:
            success = session.run_step(args_erase(session.config), log_sink)
        except LaunchFailureException as e:
            display.error(str(e))
            return OperationOutcome.LAUNCH_FAILURE

    if not success:
        display.error("Erase failed.")
        return OperationOutcome.STEP_FAILURE

    display.success("\nFlash erased.")
    return OperationOutcome.SUCCESS
