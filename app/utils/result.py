"""Tagged success/failure values used across the engine."""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from app.errors import TutorEngineError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    failure: TutorEngineError


Result = Union[Ok[T], Err]
