"""Custom exceptions for State Store."""


class StateStoreError(Exception):
    """Base exception for State Store errors."""


class UserNotFoundError(StateStoreError):
    """User with given ID does not exist."""


class UserExistsError(StateStoreError):
    """User with given email already exists."""


class SemesterNotFoundError(StateStoreError):
    """Semester with given ID does not exist."""


class CourseNotFoundError(StateStoreError):
    """Course with given ID does not exist."""


class CourseExistsError(StateStoreError):
    """Course with given code already exists."""
