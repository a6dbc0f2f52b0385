from typing import Optional, Dict, Any


class TechStockException(Exception):
    """Base exception for all TechStock errors."""
    def __init__(
        self,
        message: str,
        code: str = "internal_error",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(TechStockException):
    """Raised when an entity referenced by id does not exist."""
    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            f"Entity not found: {entity} with id {entity_id}",
            code="not_found",
            status_code=404,
            details={"entity": entity, "id": str(entity_id)},
        )
        self.entity = entity
        self.entity_id = entity_id


class AlreadyExistsError(TechStockException):
    """Raised when a uniqueness rule (name, code, ...) would be broken."""
    def __init__(self, entity: str, field: str, value: Any):
        super().__init__(
            f"Entity already exists: {entity} with {field} = {value}",
            code="already_exists",
            status_code=409,
            details={"entity": entity, "field": field, "value": str(value)},
        )
        self.entity = entity
        self.field = field
        self.value = value


class InvalidInputError(TechStockException):
    """Raised when caller input fails a use-case validation."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Invalid input: {message}", code="invalid_input", status_code=400, details=details
        )


class BusinessRuleViolationError(TechStockException):
    """Raised when an operation is well-formed but breaks a catalog rule."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Business rule violation: {message}",
            code="business_rule_violation",
            status_code=422,
            details=details,
        )


class DatabaseError(TechStockException):
    """Raised when the store fails. The raw message never leaves the process."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Database error: {message}", code="database_error", status_code=500, details=details
        )


class InternalError(TechStockException):
    """Raised for unexpected internal failures."""
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Internal error: {message}", code="internal_error", status_code=500, details=details
        )
