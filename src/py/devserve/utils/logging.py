import os
import sys
import time
from contextvars import ContextVar
from enum import Enum
from typing import Any, NamedTuple, TypeAlias

from .term import Term

# NOTE: `sys.stderr` is looked up on each write, it may be swapped.

TValue: TypeAlias = bool | int | float | str | bytes | None | list | tuple | dict

LogOrigin: ContextVar[str] = ContextVar("LogOrigin", default="devserve")


class LogType(Enum):
	Message = 0
	Event = 20


class LogLevel(Enum):
	Debug = 0
	Info = 10
	Warning = 30
	Error = 40
	Exception = 50


LOG_LEVEL_COLOR: dict[LogLevel, int] = {
	LogLevel.Debug: 31,
	LogLevel.Info: 75,
	LogLevel.Warning: 202,
	LogLevel.Error: 160,
	LogLevel.Exception: 124,
}

LOG_LEVELS: dict[str, LogLevel] = {_.name.lower(): _ for _ in LogLevel}

# The minimum level that gets written out, set with `DEVSERVE_LOG_LEVEL`.
LOG_LEVEL: LogLevel = LOG_LEVELS.get(
	os.getenv("DEVSERVE_LOG_LEVEL", "info").lower(), LogLevel.Info
)


class LogEntry(NamedTuple):
	origin: str
	time: float
	type: LogType = LogType.Message
	level: LogLevel = LogLevel.Info
	message: str | None = None
	name: str | None = None
	value: Any = None
	context: dict[str, TValue] | None = None
	icon: str | None = None


def formatData(value: Any) -> str:
	if value is None or value == () or value == [] or value == {}:
		return "◌"
	elif isinstance(value, dict):
		return " ".join(
			f"{Term.BOLD}{k}{Term.RESET}={formatData(v)}" for k, v in value.items()
		)
	elif isinstance(value, (list, tuple)):
		return ",".join(formatData(v) for v in value)
	elif isinstance(value, str):
		return repr(value) if " " in value else value
	elif isinstance(value, bool):
		return "✓" if value else "✗"
	elif isinstance(value, float):
		return f"{value:0.2f}"
	else:
		return str(value)


def send(entry: LogEntry) -> LogEntry:
	if entry.level.value < LOG_LEVEL.value:
		return entry
	out = sys.stderr
	clr: str = Term.Color(LOG_LEVEL_COLOR[entry.level])
	if entry.type == LogType.Event:
		out.write(
			f"{clr}{Term.BOLD}[{entry.origin}] {entry.name}{Term.RESET} {formatData(entry.value)} {formatData(entry.context)}{Term.RESET}\n"
		)
	else:
		icon: str = f" {entry.icon}" if entry.icon else ""
		out.write(
			f"{clr}{Term.BOLD}[{entry.origin}]{Term.RESET}{icon} {entry.message} {formatData(entry.context)}{Term.RESET}\n"
		)
	out.flush()
	return entry


def log(
	level: LogLevel,
	message: str,
	*,
	origin: str | None = None,
	icon: str | None = None,
	**context: TValue,
) -> LogEntry:
	return send(
		LogEntry(
			origin=origin or LogOrigin.get(),
			time=time.time(),
			level=level,
			message=message,
			context=context,
			icon=icon,
		)
	)


def debug(message: str, *, icon: str | None = None, **context: TValue) -> LogEntry:
	return log(LogLevel.Debug, message, icon=icon, **context)


def info(message: str, *, icon: str | None = None, **context: TValue) -> LogEntry:
	return log(LogLevel.Info, message, icon=icon, **context)


def warning(message: str, *, icon: str | None = None, **context: TValue) -> LogEntry:
	return log(LogLevel.Warning, message, icon=icon, **context)


def error(
	message: str, code: int | str | None = None, *, icon: str | None = None, **context: TValue
) -> LogEntry:
	return log(
		LogLevel.Error, message, icon=icon, **({"Code": code} if code else {}), **context
	)


def event(event: str, value: Any = None, **context: TValue) -> LogEntry:
	return send(
		LogEntry(
			origin=LogOrigin.get(),
			time=time.time(),
			type=LogType.Event,
			name=event,
			value=value,
			context=context,
		)
	)


def exception(exception: BaseException, message: str | None = None) -> BaseException:
	"""Writes out the exception and its traceback, returning the exception so
	that it can be used as `raise exception(e)`."""
	try:
		out = sys.stderr
		out.write(
			f"!!! EXCP {f'{message}: ' if message else ''}[{exception.__class__.__name__}] {exception}\n"
		)
		tb = exception.__traceback__
		while tb:
			code = tb.tb_frame.f_code
			out.write(
				f"... in {code.co_name:15s} at {tb.tb_lineno:4d} in {code.co_filename}\n"
			)
			tb = tb.tb_next
		out.flush()
	except Exception:  # nosec: B110
		# This is called from exception handlers, it must never raise.
		pass
	return exception


LOGGED_LEVELS: dict[Any, LogLevel] = {
	debug: LogLevel.Debug,
	info: LogLevel.Info,
	warning: LogLevel.Warning,
	error: LogLevel.Error,
	event: LogLevel.Info,
}


def logged(item: Any) -> bool:
	"""Takes one of the logging functions and tells if its level is currently
	written out. This guards against building entries for nothing."""
	return LOGGED_LEVELS.get(item, LogLevel.Info).value >= LOG_LEVEL.value


# EOF
