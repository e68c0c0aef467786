# core/errors.py

"""
Error taxonomy for the console.

  AuthFailure        invalid credentials / expired session      -> 401
  PermissionDenied   local RBAC decision (never a remote call)  -> 403 / redirect
  DataAccessFailure  document store or provider call rejected   -> 503
  ValidationFailure  form input rejected before any network I/O -> 400

main.py registers one handler per class so every failure is answered at the
boundary and the service keeps serving.
"""


class ConsoleError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class AuthFailure(ConsoleError):
    status_code = 401


class PermissionDenied(ConsoleError):
    status_code = 403

    def __init__(self, message: str, redirect_to: str | None = None):
        super().__init__(message)
        self.redirect_to = redirect_to


class DataAccessFailure(ConsoleError):
    status_code = 503

    def __init__(self, operation: str, detail: str = ""):
        message = f"{operation} failed: {detail}" if detail else f"{operation} failed"
        super().__init__(message)
        self.operation = operation
        self.detail = detail


class ValidationFailure(ConsoleError):
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """

    # GoTrue / PostgREST errors carry .message
    message = getattr(error, "message", None)
    if message:
        return str(message)

    if error.args:
        return str(error.args[0])

    return str(error) or type(error).__name__


def data_access_failure(error: Exception, operation: str) -> DataAccessFailure:
    """
    Wrap a backend exception as DataAccessFailure and log it.
    Returns (doesn't raise) so the caller controls the traceback chain:

        except Exception as e:
            raise data_access_failure(e, "Read users/u1") from e
    """
    from core.logging_config import logger

    detail = extract_supabase_error(error)
    logger.error(f"{operation}: {detail}")

    lowered = detail.lower()
    if "duplicate" in lowered or "unique" in lowered:
        detail = "record already exists"
    elif "not found" in lowered or "does not exist" in lowered:
        detail = "resource not found"

    return DataAccessFailure(operation, detail)
