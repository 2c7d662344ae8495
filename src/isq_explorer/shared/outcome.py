"""
Outcome Module - Value-based error handling.
============================================

Small wrappers that turn expected failures into ordinary data:

- Option: zero or one value, no diagnostic
- Try: a value or the exception a computation raised
- Result: success or a single carried error, used for whole-stage outcomes

None of these types coerce to bool. Use ``has_value`` / ``is_ok()`` instead,
so a failed Result can never be mistaken for a truthy object.
"""

from typing import Any, Awaitable, Callable, Generic, Iterable, Optional, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")

ExceptionTypes = Union[type[BaseException], tuple[type[BaseException], ...]]


class EmptyOptionError(LookupError):
    """Raised when the value of an empty Option is requested."""


# ─────────────────────────────────────────────────────────────────────────────
# Option
# ─────────────────────────────────────────────────────────────────────────────


class Option(Generic[T]):
    """
    Holds zero or one value.

    Example:
        >>> Option.some(3).value_or(0)
        3
        >>> Option.none().has_value
        False
    """

    __slots__ = ("_value", "_present")

    def __init__(self, value: Optional[T] = None, present: bool = False):
        self._value = value
        self._present = present

    @classmethod
    def some(cls, value: T) -> "Option[T]":
        return cls(value, True)

    @classmethod
    def none(cls) -> "Option[T]":
        return cls()

    @classmethod
    def of(cls, value: Optional[T]) -> "Option[T]":
        """Wrap a possibly-None value; None becomes an empty Option."""
        return cls.none() if value is None else cls.some(value)

    @property
    def has_value(self) -> bool:
        return self._present

    @property
    def value(self) -> T:
        """
        Get the contained value.

        Raises:
            EmptyOptionError: If the Option is empty (caller error)
        """
        if not self._present:
            raise EmptyOptionError("Option has no value")
        return self._value  # type: ignore[return-value]

    def value_or(self, default: T) -> T:
        return self._value if self._present else default  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> "Option[U]":
        if not self._present:
            return Option.none()
        return Option.some(fn(self._value))  # type: ignore[arg-type]

    def __bool__(self) -> bool:
        raise TypeError("Option does not support truth testing; use .has_value")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Option):
            return NotImplemented
        return self._present == other._present and self._value == other._value

    def __repr__(self) -> str:
        return f"Option.some({self._value!r})" if self._present else "Option.none()"


# ─────────────────────────────────────────────────────────────────────────────
# Try
# ─────────────────────────────────────────────────────────────────────────────


class Try(Generic[T]):
    """
    Either a value or the exception raised while computing it.

    ``Try.of`` only captures exceptions matching ``catch``; anything else
    keeps propagating, so errors from unrelated subsystems are not absorbed.

    Example:
        >>> Try.of(int, "42").unwrap()
        42
        >>> Try.of(int, "x", catch=ValueError).is_err()
        True
    """

    __slots__ = ("_value", "_error")

    def __init__(self, value: Optional[T] = None, error: Optional[BaseException] = None):
        self._value = value
        self._error = error

    @classmethod
    def ok(cls, value: T) -> "Try[T]":
        return cls(value=value)

    @classmethod
    def err(cls, error: BaseException) -> "Try[T]":
        if error is None:
            raise ValueError("Try.err requires an exception")
        return cls(error=error)

    @classmethod
    def of(
        cls,
        fn: Callable[..., T],
        *args: Any,
        catch: ExceptionTypes = Exception,
        **kwargs: Any,
    ) -> "Try[T]":
        """
        Run a computation and capture its outcome.

        Args:
            fn: Callable to run
            *args: Positional arguments for fn
            catch: Exception type(s) turned into the error case
            **kwargs: Keyword arguments for fn

        Returns:
            Try holding the return value or the caught exception
        """
        try:
            return cls.ok(fn(*args, **kwargs))
        except catch as e:  # type: ignore[misc]
            return cls.err(e)

    @classmethod
    async def of_async(
        cls,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        catch: ExceptionTypes = Exception,
        **kwargs: Any,
    ) -> "Try[T]":
        """Awaitable counterpart of ``Try.of``."""
        try:
            return cls.ok(await fn(*args, **kwargs))
        except catch as e:  # type: ignore[misc]
            return cls.err(e)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    def unwrap(self) -> T:
        """Return the value, re-raising the carried error if there is one."""
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]

    def unwrap_err(self) -> BaseException:
        if self._error is None:
            raise ValueError("Try holds a value, not an error")
        return self._error

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def value_or(self, default: T) -> T:
        return default if self._error is not None else self._value  # type: ignore[return-value]

    def map(self, fn: Callable[[T], U]) -> "Try[U]":
        """Apply fn to the value; exceptions raised by fn become the error."""
        if self._error is not None:
            return Try.err(self._error)
        return Try.of(fn, self._value)

    def to_option(self) -> Option[T]:
        return Option.none() if self._error is not None else Option.some(self._value)  # type: ignore[arg-type]

    def __bool__(self) -> bool:
        raise TypeError("Try does not support truth testing; use .is_ok()")

    def __repr__(self) -> str:
        if self._error is not None:
            return f"Try.err({self._error!r})"
        return f"Try.ok({self._value!r})"


# ─────────────────────────────────────────────────────────────────────────────
# Result
# ─────────────────────────────────────────────────────────────────────────────


class Result:
    """
    Success, or failure carrying exactly one error.

    Used for whole-stage outcomes. ``and_then`` gives short-circuit
    composition: the next stage only runs if this one succeeded, and the
    first failure is reported unchanged.

    Example:
        >>> first = Result.err(RuntimeError("boom"))
        >>> first.and_then(lambda: Result.ok()) is first
        True
    """

    __slots__ = ("_error",)

    def __init__(self, error: Optional[BaseException] = None):
        self._error = error

    @classmethod
    def ok(cls) -> "Result":
        return cls()

    @classmethod
    def err(cls, error: BaseException) -> "Result":
        if error is None:
            raise ValueError("Result.err requires an exception")
        return cls(error)

    @classmethod
    def of(cls, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> "Result":
        """
        Run a stage and capture its outcome.

        A returned Result passes through unchanged, any raised exception
        becomes the error, and any other return value counts as success.
        """
        try:
            outcome = fn(*args, **kwargs)
        except Exception as e:
            return cls.err(e)
        if isinstance(outcome, Result):
            return outcome
        return cls.ok()

    @classmethod
    def all(cls, results: Iterable["Result"]) -> "Result":
        """Return the first failure in results, or success."""
        for result in results:
            if result.is_err():
                return result
        return cls.ok()

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return self._error is not None

    @property
    def error(self) -> Optional[BaseException]:
        return self._error

    def unwrap_err(self) -> BaseException:
        if self._error is None:
            raise ValueError("Result is a success and carries no error")
        return self._error

    def and_then(self, fn: Callable[[], "Result"]) -> "Result":
        if self._error is not None:
            return self
        return Result.of(fn)

    def __bool__(self) -> bool:
        raise TypeError("Result does not support truth testing; use .is_ok()")

    def __repr__(self) -> str:
        return "Result.ok()" if self._error is None else f"Result.err({self._error!r})"
