"""
Structured logging for catalog, index, translation and approval operations.
"""

import logging
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for platform operations."""

    def __init__(self, name: str = "icp_platform"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_entity_operation(self, operation: str, collection: str, entity_id: str, actor: str = None, status: str = "success"):
        """Log a create/update on a catalog entity."""
        details = {"collection": collection, "id": entity_id}
        if actor is not None:
            details["actor"] = actor

        self.log_operation(f"{collection}.{operation}", status, details)

    def log_vector_operation(self, operation: str, record_id: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector operation."""
        log_details = {"record_id": record_id}
        if details:
            log_details.update(details)

        level = logging.INFO if status == "success" else logging.WARNING
        self.log_operation(f"vector.{operation}", status, log_details, level)

    def log_index_build(self, collection: str, start_time: float, end_time: float, indexed: int, failed: int):
        """Log completion of a full index build."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {
            "collection": collection,
            "indexed": indexed,
            "failed": failed,
            "duration_ms": duration_ms
        }
        status = "success" if failed == 0 else "degraded"
        self.log_operation("vector.build", status, log_details)

    def log_translation(self, collection: str, entity_id: str, language: str, status: str, details: Dict[str, Any] = None):
        """Log a translation cache hit, miss or failure."""
        log_details = {
            "collection": collection,
            "id": entity_id,
            "language": language
        }
        if details:
            log_details.update(details)

        level = logging.WARNING if status == "failed" else logging.INFO
        self.log_operation("translation", status, log_details, level)

    def log_schema_validation_error(self, operation: str, errors: List[Any], source_record: Dict[str, Any] = None):
        """Log schema validation errors with sanitized details."""
        # Field values may carry user content, keep only locations and messages
        sanitized_errors = []
        for error in errors:
            if isinstance(error, dict):
                sanitized_error = error.copy()
                if "value" in sanitized_error:
                    sanitized_error["value"] = "[REDACTED]"
                sanitized_errors.append(sanitized_error)
            else:
                sanitized_errors.append(str(error)[:100])

        log_details = {
            "operation": operation,
            "errors": sanitized_errors,
            "error_count": len(sanitized_errors)
        }

        if source_record and "id" in source_record:
            log_details["target_identifier"] = source_record["id"]

        self.log_operation("schema_validation.error", "rejected", log_details)

    def log_approval_request(self, ticket_id: str, ticket_type: str, requester: str, target_id: str = None):
        """Log approval ticket creation."""
        log_details = {
            "ticket_id": ticket_id,
            "ticket_type": ticket_type,
            "requester": requester
        }
        if target_id:
            log_details["target_id"] = target_id
        self.log_operation("approval.request_created", "pending", log_details)

    def log_approval_decision(self, ticket_id: str, decision: str, approver: str, reason: str = ""):
        """Log a ticket status decision."""
        log_details = {
            "ticket_id": ticket_id,
            "decision": decision,
            "approver": approver,
            "reason": reason[:100] if reason else ""
        }
        self.log_operation("approval.decision", decision.lower(), log_details)

    # Plain messages
    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)


logger = StructuredLogger()
