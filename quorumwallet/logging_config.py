"""
Logging configuration for QuorumWallet.

Provides structured JSON logging for audit trails and debugging.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, List, Optional

# Context variable for correlating all log lines of one invocation
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs logs in a consistent JSON format suitable for
    log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Specialized logger for wallet audit events.

    Provides methods for logging executions, signature rejections,
    fee movements and owner-set changes.
    """

    def __init__(self, name: str = "quorumwallet.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        """Internal logging method with extra fields."""
        if not self._logger.isEnabledFor(level):
            return

        extra = {
            "event_type": event_type,
            "request_id": request_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def execution_request(
        self,
        wallet: str,
        nonce: int,
        digest: str,
        destination: str,
        value: int
    ) -> None:
        """Log an execution request."""
        self._log(
            logging.INFO,
            "EXECUTION_REQUEST",
            wallet=wallet,
            nonce=nonce,
            digest=digest,
            destination=destination,
            value=value,
            message=f"Execution requested at nonce {nonce}"
        )

    def execution_complete(
        self,
        wallet: str,
        nonce: int,
        digest: str,
        result_size: int
    ) -> None:
        """Log a successful dispatch."""
        self._log(
            logging.INFO,
            "EXECUTION_COMPLETE",
            wallet=wallet,
            nonce=nonce,
            digest=digest,
            result_size=result_size,
            message=f"Execution SUCCESS at nonce {nonce}"
        )

    def execution_failed(
        self,
        wallet: str,
        nonce: int,
        digest: str,
        reason: str
    ) -> None:
        """Log a failed dispatch; the nonce stays consumed."""
        self._log(
            logging.ERROR,
            "EXECUTION_FAILED",
            wallet=wallet,
            nonce=nonce,
            digest=digest,
            reason=reason,
            message=f"Execution FAILED at nonce {nonce}: {reason}"
        )

    def signature_rejected(
        self,
        wallet: str,
        nonce: int,
        kind: str,
        reason: str
    ) -> None:
        """Log a rejected signature set."""
        self._log(
            logging.WARNING,
            "SIGNATURE_REJECTED",
            wallet=wallet,
            nonce=nonce,
            kind=kind,
            reason=reason,
            message=f"Signatures rejected: {kind}"
        )

    def fee_distributed(
        self,
        wallet: str,
        revenue: int,
        credits: Dict[str, int],
        undistributed: int
    ) -> None:
        """Log a fee split."""
        self._log(
            logging.INFO,
            "FEE_DISTRIBUTED",
            wallet=wallet,
            revenue=revenue,
            credits=credits,
            undistributed=undistributed,
            message=f"Distributed {revenue} revenue"
        )

    def withdrawal(
        self,
        wallet: str,
        total: int,
        payouts: List[Dict[str, Any]]
    ) -> None:
        """Log a completed withdrawal sweep."""
        self._log(
            logging.INFO,
            "WITHDRAWAL",
            wallet=wallet,
            total=total,
            payouts=payouts,
            message=f"Withdrew {total} across {len(payouts)} payouts"
        )

    def owner_changed(
        self,
        wallet: str,
        identity: str,
        added: bool,
        threshold: int
    ) -> None:
        """Log an owner-set change."""
        self._log(
            logging.INFO,
            "OWNER_CHANGED",
            wallet=wallet,
            identity=identity,
            added=added,
            threshold=threshold,
            message=f"Owner {'added' if added else 'removed'}: {identity}"
        )

    def security_event(
        self,
        event: str,
        severity: str = "medium",
        **details
    ) -> None:
        """Log a security-relevant event."""
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL
        }.get(severity, logging.WARNING)

        self._log(
            level,
            "SECURITY_EVENT",
            security_event=event,
            severity=severity,
            **details,
            message=f"Security event: {event}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting (recommended for production)
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the correlation ID for the current context.

    Args:
        request_id: ID to set, or None to generate one

    Returns:
        The ID that was set
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    """Get the current correlation ID."""
    return request_id_var.get()


# Global audit logger instance
audit_log = AuditLogger()
