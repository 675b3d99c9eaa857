"""
Centralized logging system with rotating file handlers, compression, and singleton pattern.
"""
import sys
import os
import re
import logging
import logging.handlers
import gzip
import shutil
import threading
import atexit
from pathlib import Path
from typing import Dict, Any
from pythonjsonlogger import jsonlogger
from core.config import settings


class ComponentFilter(logging.Filter):
    """Filter to ensure all log records have a component field."""

    def __init__(self, default_component: str = "unknown"):
        super().__init__()
        self.default_component = default_component

    def filter(self, record):
        """Add component field if missing."""
        if not hasattr(record, 'component'):
            # Try to infer component from logger name
            logger_name = record.name
            if logger_name in ['httpx', 'uvicorn', 'uvicorn.access']:
                record.component = 'http'
            elif logger_name.startswith('sqlalchemy'):
                record.component = 'database'
            elif logger_name.startswith(('boto3', 'botocore', 's3transfer')):
                record.component = 'storage'
            else:
                record.component = self.default_component
        return True


class SecurityFilter(logging.Filter):
    """Filter to remove sensitive information from logs."""

    SENSITIVE_KEYS = {
        'password', 'token', 'secret', 'key', 'authorization',
        'auth', 'credential', 'pass', 'jwt', 'bearer', 'signature'
    }

    def filter(self, record):
        """Filter sensitive information from log records."""
        if hasattr(record, 'msg') and isinstance(record.msg, str):
            record.msg = self._sanitize_message(record.msg)

        if hasattr(record, 'args') and record.args:
            record.args = tuple(self._sanitize_value(arg) for arg in record.args)

        return True

    def _sanitize_message(self, message: str) -> str:
        """Sanitize message content."""
        # Hide potential access keys (long alphanumeric strings)
        message = re.sub(r'\b[A-Za-z0-9]{32,}\b', '[REDACTED]', message)

        # Hide potential JWT tokens
        message = re.sub(
            r'Bearer\s+[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+\.[A-Za-z0-9\-_=]+',
            'Bearer [REDACTED]',
            message
        )

        # Hide signatures of presigned URLs
        message = re.sub(r'(X-Amz-Signature|Signature)=[^&\s]+', r'\1=[REDACTED]', message)

        # Hide passwords in URLs
        message = re.sub(r'://[^:/]+:[^@]+@', '://[REDACTED]:[REDACTED]@', message)

        return message

    def _sanitize_value(self, value: Any) -> Any:
        """Sanitize a single value."""
        if isinstance(value, str):
            return self._sanitize_message(value)
        elif isinstance(value, dict):
            return {
                k: '[REDACTED]' if any(sensitive in k.lower() for sensitive in self.SENSITIVE_KEYS) else v
                for k, v in value.items()
            }
        return value


def _compress_file(source: str) -> None:
    """Gzip a rotated log file in place, keeping the original if compression fails."""
    compressed_file = f"{source}.gz"
    try:
        with open(source, 'rb') as f_in:
            with gzip.open(compressed_file, 'wb') as f_out:
                shutil.copyfileobj(f_in, f_out)
        os.remove(source)
    except OSError as e:
        print(f"Warning: Failed to compress log file {source}: {e}")


class CompressedTimedRotatingFileHandler(logging.handlers.TimedRotatingFileHandler):
    """Timed rotating file handler that compresses rotated files."""

    def __init__(self, *args, **kwargs):
        self.compress_logs = kwargs.pop('compress_logs', settings.log_compression)
        super().__init__(*args, **kwargs)

    def doRollover(self):
        super().doRollover()

        if not self.compress_logs:
            return
        directory, base_name = os.path.split(self.baseFilename)
        for file_name in os.listdir(directory or "."):
            if file_name.startswith(base_name + ".") and not file_name.endswith(".gz"):
                _compress_file(os.path.join(directory, file_name))


class CompressedRotatingFileHandler(logging.handlers.RotatingFileHandler):
    """Size based rotating file handler that compresses rotated files."""

    def __init__(self, *args, **kwargs):
        self.compress_logs = kwargs.pop('compress_logs', settings.log_compression)
        super().__init__(*args, **kwargs)

    def doRollover(self):
        super().doRollover()

        if self.compress_logs and self.backupCount > 0:
            backup_file = f"{self.baseFilename}.1"
            if not os.path.exists(backup_file):
                return

            # Shift existing archives up by one before compressing the newest backup
            for i in range(self.backupCount - 1, 0, -1):
                old_compressed = f"{self.baseFilename}.{i}.gz"
                new_compressed = f"{self.baseFilename}.{i + 1}.gz"
                if os.path.exists(old_compressed):
                    if os.path.exists(new_compressed):
                        os.remove(new_compressed)
                    os.rename(old_compressed, new_compressed)
            _compress_file(backup_file)


class StructuredLogger:
    """A logger wrapper that provides structured logging capabilities."""

    def __init__(self, name: str, logger: logging.Logger):
        self.name = name
        self._logger = logger

    def _format_message(self, msg: str, **kwargs) -> str:
        """Format message with structured data."""
        if not kwargs:
            return msg

        if settings.log_format == "json":
            # Structured data travels in `extra` and is rendered by the JSON formatter
            return msg

        structured_parts = [f"{key}={value}" for key, value in kwargs.items()]
        return f"{msg} [{', '.join(structured_parts)}]"

    def _log(self, level: int, msg: str, *args, **kwargs):
        """Internal logging method."""
        exc_info = kwargs.pop('exc_info', False)
        extra = kwargs.pop('extra', {})

        extra.setdefault('component', self.name)
        if settings.log_format == "json":
            for key, value in kwargs.items():
                # Reserved LogRecord attributes cannot be overwritten through `extra`
                extra[key if key not in _RESERVED_ATTRS else f"ctx_{key}"] = value

        formatted_msg = self._format_message(msg, **kwargs)

        self._logger.log(level, formatted_msg, *args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        """Log an error together with the active exception."""
        kwargs['exc_info'] = True
        self.error(msg, *args, **kwargs)

    def critical(self, msg: str, *args, **kwargs):
        self._log(logging.CRITICAL, msg, *args, **kwargs)


_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


class CentralizedLogManager:
    """Singleton centralized log manager with rotating handlers and compression."""

    _instance = None
    _lock = threading.Lock()
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._loggers: Dict[str, StructuredLogger] = {}
        self._handlers: Dict[str, logging.Handler] = {}
        self._log_directory = None

        with self._lock:
            if not self._initialized:
                if settings.enable_file_logging:
                    self._ensure_log_directory()
                self._setup_root_logger()
                self._setup_component_loggers()
                self._initialized = True

    def _ensure_log_directory(self):
        self._log_directory = Path(settings.log_directory)
        self._log_directory.mkdir(parents=True, exist_ok=True)

    def _create_formatter(self, include_component: bool = True) -> logging.Formatter:
        """Create a formatter based on settings."""
        if settings.log_format == "json":
            if include_component:
                fmt = "%(asctime)s %(name)s %(levelname)s %(component)s %(message)s"
            else:
                fmt = "%(asctime)s %(name)s %(levelname)s %(message)s"
            return jsonlogger.JsonFormatter(fmt=fmt, datefmt="%Y-%m-%dT%H:%M:%S")

        if include_component:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - [%(component)s] - %(message)s"
        else:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        return logging.Formatter(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")

    def _create_rotating_handler(self, log_file: str, level: int = logging.INFO) -> logging.Handler:
        """Create a rotating file handler with proper configuration."""
        file_path = self._log_directory / log_file
        backup_count = settings.log_file_backup_count

        if settings.log_rotation_when != "size":
            handler = CompressedTimedRotatingFileHandler(
                filename=str(file_path),
                when=settings.log_rotation_when,
                interval=settings.log_rotation_interval,
                backupCount=backup_count,
                compress_logs=settings.log_compression
            )
        else:
            handler = CompressedRotatingFileHandler(
                filename=str(file_path),
                maxBytes=settings.log_file_max_size_mb * 1024 * 1024,
                backupCount=backup_count,
                compress_logs=settings.log_compression
            )

        handler.setLevel(level)
        handler.addFilter(ComponentFilter())
        handler.addFilter(SecurityFilter())
        handler.setFormatter(self._create_formatter(include_component=True))
        return handler

    def _create_console_handler(self) -> logging.Handler:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
        handler.addFilter(ComponentFilter())
        handler.addFilter(SecurityFilter())
        handler.setFormatter(self._create_formatter(include_component=False))
        return handler

    def _setup_root_logger(self):
        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

        console_handler = self._create_console_handler()
        root_logger.addHandler(console_handler)
        self._handlers['console'] = console_handler

        if settings.enable_file_logging:
            app_handler = self._create_rotating_handler(settings.app_log_file)
            root_logger.addHandler(app_handler)
            self._handlers['app'] = app_handler

            # Only ERROR and CRITICAL
            error_handler = self._create_rotating_handler(settings.error_log_file, logging.ERROR)
            root_logger.addHandler(error_handler)
            self._handlers['error'] = error_handler

    def _setup_component_loggers(self):
        """Route component loggers to their own files."""
        if not settings.enable_file_logging:
            return

        component_configs = {
            'security': {
                'file': settings.security_log_file,
                'level': logging.INFO,
                'loggers': ['security', 'auth']
            },
            'database': {
                'file': settings.database_log_file,
                'level': logging.INFO if settings.enable_sql_logging else logging.WARNING,
                'loggers': ['database', 'sqlalchemy.engine']
            },
            'storage': {
                'file': settings.storage_log_file,
                'level': logging.INFO,
                'loggers': ['storage', 'uploads', 'botocore']
            },
            'access': {
                'file': settings.access_log_file,
                'level': logging.INFO,
                'loggers': ['uvicorn', 'uvicorn.access', 'access', 'httpx']
            }
        }

        for component, config in component_configs.items():
            handler = self._create_rotating_handler(config['file'], config['level'])
            self._handlers[component] = handler

            for logger_name in config['loggers']:
                logger = logging.getLogger(logger_name)
                logger.addHandler(handler)
                logger.setLevel(config['level'])

                # Security events stay out of the shared app log
                if logger_name in ['security', 'auth']:
                    logger.propagate = False

    def get_logger(self, name: str) -> StructuredLogger:
        """Get a structured logger instance for a component."""
        if name not in self._loggers:
            self._loggers[name] = StructuredLogger(name, logging.getLogger(name))
        return self._loggers[name]

    def shutdown(self):
        """Close all handlers gracefully."""
        for handler_name, handler in self._handlers.items():
            try:
                handler.close()
            except Exception as e:
                print(f"Error closing handler {handler_name}: {e}")
        self._handlers.clear()
        self._loggers.clear()

        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            handler.close()
            root_logger.removeHandler(handler)

        self._initialized = False
        CentralizedLogManager._instance = None


# Global singleton instance
_log_manager = None


def setup_logging():
    """Setup centralized logging system."""
    global _log_manager
    if _log_manager is None:
        _log_manager = CentralizedLogManager()
    return _log_manager


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger instance."""
    return setup_logging().get_logger(name)


def shutdown_logging():
    """Shutdown logging system gracefully."""
    global _log_manager
    if _log_manager is not None:
        _log_manager.shutdown()
        _log_manager = None


# Pre-configured logger instances for common components
app_logger = get_logger("app")
security_logger = get_logger("security")
database_logger = get_logger("database")
storage_logger = get_logger("storage")
access_logger = get_logger("access")


def _cleanup_logging():
    try:
        shutdown_logging()
    except Exception as e:
        print(f"Error during logging cleanup: {e}")


atexit.register(_cleanup_logging)
