import logging
import os
from pathlib import Path

LOG_DIR = Path(__file__).parent.parent / "logs"
LOG_FILE = LOG_DIR / "app.log"

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_MODES = ('off', 'info', 'debug')

# Cache for log mode to avoid repeated environment reads
_log_mode_cache = None

# Names of loggers handed out by get_logger
_managed_loggers = set()


def _get_log_mode():
    """Get log mode from the environment unless set_log_mode() already chose one."""
    global _log_mode_cache
    if _log_mode_cache is not None:
        return _log_mode_cache

    log_mode = os.environ.get('LOG_MODE', 'info').strip().lower()
    if log_mode not in LOG_MODES:
        log_mode = 'info'
    _log_mode_cache = log_mode
    return log_mode


def _levels_for(log_mode: str):
    if log_mode == 'debug':
        return logging.DEBUG, logging.DEBUG
    if log_mode == 'off':
        # Higher than CRITICAL disables everything
        return logging.CRITICAL + 1, logging.CRITICAL + 1
    return logging.INFO, logging.INFO


def _sync_handlers(logger: logging.Logger, log_mode: str) -> None:
    """Bring a configured logger's level and handlers in line with log_mode."""
    logger_level, console_level = _levels_for(log_mode)
    logger.setLevel(logger_level)

    log_format = logging.Formatter(LOG_FORMAT)
    has_file_handler = any(isinstance(h, logging.FileHandler) for h in logger.handlers)

    if log_mode != 'off' and not has_file_handler:
        LOG_DIR.mkdir(exist_ok=True)
        f_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
        f_handler.setLevel(logging.DEBUG)
        f_handler.setFormatter(log_format)
        logger.addHandler(f_handler)
    elif log_mode == 'off' and has_file_handler:
        handlers_to_remove = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
        for handler in handlers_to_remove:
            handler.close()
            logger.removeHandler(handler)

    has_console_handler = False
    for handler in logger.handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(handler, logging.FileHandler):
            handler.setLevel(console_level)
            has_console_handler = True

    if not has_console_handler:
        c_handler = logging.StreamHandler()
        c_handler.setLevel(console_level)
        c_handler.setFormatter(log_format)
        logger.addHandler(c_handler)


def set_log_mode(log_mode: str) -> None:
    """Switch the log mode and update all loggers created by get_logger()."""
    global _log_mode_cache
    log_mode = (log_mode or 'info').strip().lower()
    _log_mode_cache = log_mode if log_mode in LOG_MODES else 'info'

    for logger_name in sorted(_managed_loggers):
        _sync_handlers(logging.getLogger(logger_name), _log_mode_cache)


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    _managed_loggers.add(name)
    _sync_handlers(logger, _get_log_mode())
    return logger
