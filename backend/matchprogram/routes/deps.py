"""
Shared route dependencies and error translation.
"""
from contextlib import contextmanager
from typing import Iterator

from fastapi import Depends, HTTPException
from sqlmodel import Session

from matchprogram.database import get_session
from matchprogram.services.match_program import (
    InvalidRoundError,
    NoActiveSessionError,
    SessionEndError,
    SessionEndedError,
)
from matchprogram.services.match_store import (
    CheckInError,
    MatchNotFoundError,
    MatchResultError,
    MatchStore,
    MatchStoreError,
)
from matchprogram.utils.auto_assign import AutoAssignValidationError
from matchprogram.utils.manual_assignment import (
    CourtCapacityError,
    CourtFullError,
    CourtLockedError,
    UnknownParticipantError,
)


def get_store(session: Session = Depends(get_session)) -> MatchStore:
    return MatchStore(session)


@contextmanager
def http_errors() -> Iterator[None]:
    """Turn recoverable engine errors into HTTP responses."""
    try:
        yield
    except (UnknownParticipantError, MatchNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (NoActiveSessionError, SessionEndedError) as e:
        raise HTTPException(status_code=409, detail=str(e))
    except (
        CourtCapacityError,
        CourtFullError,
        CourtLockedError,
        InvalidRoundError,
        AutoAssignValidationError,
        CheckInError,
        MatchResultError,
    ) as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (SessionEndError, MatchStoreError) as e:
        raise HTTPException(status_code=503, detail=str(e))
