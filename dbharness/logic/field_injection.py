"""Attach collaborators to test subjects without a DI container.

`inject_field` is an escape hatch that breaks encapsulation: it writes
straight into an object's field, bypassing property setters, custom
``__setattr__`` and frozen dataclasses. Prefer handing `inject_session` a
`setter` when the subject exposes one.

A field counts as present when it is declared on the subject's exact class
(annotation, class attribute or ``__slots__`` entry) or already lives in the
instance ``__dict__``. Methods, classmethods, staticmethods and read-only
properties are not fields. Declarations on base classes are not searched.
"""

from __future__ import annotations

import inspect
import logging
import types
from typing import Any, Callable, Optional, Tuple, Union, get_args, get_origin

from sqlalchemy.orm import Session, sessionmaker

from dbharness.errors import InjectionError

logger = logging.getLogger(__name__)


def _attribute_name(cls: type, field_name: str) -> str:
    # Private names are stored mangled: __em on class Foo lives at _Foo__em
    if field_name.startswith("__") and not field_name.endswith("__"):
        owner = cls.__name__.lstrip("_")
        if owner:
            return f"_{owner}{field_name}"
    return field_name


def _own_annotations(cls: type) -> dict:
    try:
        return dict(inspect.get_annotations(cls))
    except NameError:
        # Unresolvable forward reference; field may still be found below
        return {}


def _is_field_attribute(attr: Any) -> bool:
    # Methods and read-only descriptors are behaviour, not state
    if inspect.isroutine(attr) or isinstance(attr, (classmethod, staticmethod)):
        return False
    if isinstance(attr, property):
        return attr.fset is not None
    if hasattr(type(attr), "__get__"):
        return hasattr(type(attr), "__set__")
    return True


def _declared_on(cls: type, name: str, annotations: dict) -> bool:
    own = vars(cls)
    slots = own.get("__slots__", ())
    if isinstance(slots, str):
        slots = (slots,)
    if name in slots:
        return True
    if name in own:
        return _is_field_attribute(own[name])
    return name in annotations


def _accepted_types(annotation: Any) -> Optional[Tuple[type, ...]]:
    if annotation is Any:
        return None
    if isinstance(annotation, type):
        return (annotation,)
    if get_origin(annotation) in (Union, types.UnionType):
        args = get_args(annotation)
        if args and all(isinstance(a, type) for a in args):
            return tuple(args)
    return None


def _check_type(target_type: type, field_name: str, annotation: Any, value: Any) -> None:
    accepted = _accepted_types(annotation)
    if accepted is None:
        return
    try:
        ok = isinstance(value, accepted)
    except TypeError:
        # Parameterised generics cannot be checked with isinstance
        return
    if not ok:
        names = ", ".join(t.__name__ for t in accepted)
        raise InjectionError(target_type, field_name, f"value of type {type(value).__name__} is not {names}")


def inject_field(target: Any, field_name: str, value: Any) -> None:
    """Assign `value` into `target.field_name`, public or not.

    Raises InjectionError, leaving `target` untouched, when the field is not
    declared on the exact type or the value violates its annotated type.
    """
    cls = type(target)
    name = _attribute_name(cls, field_name)
    annotations = _own_annotations(cls)
    instance_dict = getattr(target, "__dict__", None) or {}

    if not (_declared_on(cls, name, annotations) or name in instance_dict):
        raise InjectionError(cls, field_name, "no such field declared on this type")

    if name in annotations:
        _check_type(cls, field_name, annotations[name], value)

    try:
        object.__setattr__(target, name, value)
    except (AttributeError, TypeError) as exc:
        raise InjectionError(cls, field_name, str(exc)) from exc
    logger.debug("field_injected type=%s field=%s", cls.__name__, name)


def inject_session(
    factory: sessionmaker,
    subject: Any,
    field_name: Optional[str] = None,
    setter: Optional[Callable[[Session], Any]] = None,
) -> Session:
    """Open a new Session from `factory` and hand it to `subject`.

    With `setter` the session is passed to that callable (explicit injection
    point); otherwise it is written into `field_name` via `inject_field`.
    The session is closed again if handing it over fails.
    """
    if setter is None and not field_name:
        raise ValueError("inject_session needs a field_name or a setter")
    session = factory()
    try:
        if setter is not None:
            setter(session)
        else:
            inject_field(subject, field_name, session)
    except Exception:
        session.close()
        raise
    return session


__all__ = ["inject_field", "inject_session"]
