import logging

# Project logger; handlers and level come from configure_logging().
logger = logging.getLogger("playlist_unifier")


def log_section(title: str, *args) -> None:
    """Header for a multi-step run, e.g. one sync run."""
    logger.info("=== " + title + " ===", *args)


def log_info(message: str, *args) -> None:
    logger.info(message, *args)


def log_step(message: str, *args) -> None:
    """A remote call or other slow step that is about to start."""
    logger.info("→ " + message, *args)


def log_success(message: str, *args) -> None:
    logger.info("✅ " + message, *args)


def log_warning(message: str, *args) -> None:
    """
    Non-fatal problem: the operation continues with degraded data
    (stale token, skipped provider, fallback playback link).
    """
    logger.warning("⚠️ " + message, *args)


def log_error(message: str, *args) -> None:
    """A failure that was recorded (conflict row, failed run) or answered with 5xx."""
    logger.error("❌ " + message, *args)
