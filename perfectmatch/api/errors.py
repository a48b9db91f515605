"""
Translate service exceptions into HTTP errors.

Usage:
    with service_errors():
        offer_service.respond_to_offer(...)
"""

from contextlib import contextmanager

from fastapi import HTTPException

from perfectmatch.services.application_service import DuplicateApplicationError


@contextmanager
def service_errors():
    try:
        yield
    except DuplicateApplicationError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=404, detail=str(e).strip("'\""))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
