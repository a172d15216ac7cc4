import importlib
import os
import sys
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Iterable

from .errors import ResolutionError
from .http.model import HTTPRequest, THandler
from .utils.logging import event, info

# --
# == Handler references
#
# Handlers can be given as references like `package.module:handler`, which
# are resolved by importing the module. When reloading, the reference is
# resolved again on each request, after reloading the modules that changed.


def referenceOf(value: str | Callable[..., Any]) -> str:
	"""Returns the reference (`module:qualname`) of the given value."""
	if isinstance(value, str):
		return value
	module = getattr(value, "__module__", None)
	name = getattr(value, "__qualname__", None)
	if not (module and name) or "<" in name:
		raise ResolutionError(f"Handler has no importable reference: {value!r}")
	return f"{module}:{name}"


def resolveHandler(reference: str | Callable[..., Any]) -> THandler:
	"""Resolves a reference like `module:attr` or `module.attr` to a
	callable, raising a `ResolutionError` when it can't be found."""
	if callable(reference):
		return reference
	if ":" in reference:
		module_name, _, attr = reference.partition(":")
	else:
		module_name, _, attr = reference.rpartition(".")
	if not (module_name and attr):
		raise ResolutionError(
			f"Handler reference should be like 'module:handler', got: {reference}",
			reference,
		)
	try:
		value: Any = importlib.import_module(module_name)
	except ImportError as e:
		raise ResolutionError(
			f"Could not import module '{module_name}' for handler: {reference}",
			reference,
		) from e
	for name in attr.split("."):
		if not hasattr(value, name):
			raise ResolutionError(
				f"Module '{module_name}' has no attribute '{attr}'", reference
			)
		value = getattr(value, name)
	if not callable(value):
		raise ResolutionError(f"Handler is not callable: {reference}", reference)
	return value


# -----------------------------------------------------------------------------
#
# PROVIDERS
#
# -----------------------------------------------------------------------------


class HandlerProvider(ABC):
	"""Provides the handler for a reference."""

	@abstractmethod
	def resolve(self) -> THandler: ...

	def handler(self) -> THandler:
		"""Returns a handler that calls the currently provided handler."""

		def handler(request: HTTPRequest) -> Any:
			return self.resolve()(request)

		return handler


class StaticProvider(HandlerProvider):
	"""Resolves the reference once."""

	def __init__(self, reference: str | Callable[..., Any]):
		self.value: THandler = resolveHandler(reference)

	def resolve(self) -> THandler:
		return self.value

	def handler(self) -> THandler:
		return self.value


class ReloadingProvider(HandlerProvider):
	"""Resolves the reference on each call, reloading beforehand the modules
	whose sources changed in the watched directories."""

	def __init__(
		self, reference: str | Callable[..., Any], dirs: Iterable[str | Path]
	):
		self.reference: str = referenceOf(reference)
		self.dirs: tuple[Path, ...] = tuple(Path(_) for _ in dirs)
		self.lock = threading.Lock()
		self.mtimes: dict[str, float] = self.scan()
		# Fails early on bad references
		resolveHandler(self.reference)
		info(
			"Reloading handler on changes",
			Handler=self.reference,
			Dirs=[str(_) for _ in self.dirs],
		)

	def scan(self) -> dict[str, float]:
		"""Returns the modification time of the Python sources in the watched
		directories."""
		mtimes: dict[str, float] = {}
		for base in self.dirs:
			if not base.is_dir():
				continue
			for path in base.rglob("*.py"):
				try:
					mtimes[os.path.realpath(path)] = path.stat().st_mtime
				except FileNotFoundError:
					pass
		return mtimes

	def modified(self) -> list[str]:
		"""Returns the sources that changed since the last call."""
		mtimes = self.scan()
		changed = [k for k, v in mtimes.items() if self.mtimes.get(k) != v]
		self.mtimes = mtimes
		return changed

	def reload(self, paths: Iterable[str]) -> list[str]:
		"""Reloads the loaded modules defined by the given source files."""
		sources = set(paths)
		reloaded: list[str] = []
		for name, module in list(sys.modules.items()):
			path = getattr(module, "__file__", None)
			if path and os.path.realpath(path) in sources:
				importlib.reload(module)
				reloaded.append(name)
		if reloaded:
			event("Reloaded", reloaded)
		return reloaded

	def resolve(self) -> THandler:
		with self.lock:
			if changed := self.modified():
				self.reload(changed)
			return resolveHandler(self.reference)


def provider(
	reference: str | Callable[..., Any],
	*,
	reload: bool = False,
	dirs: Iterable[str | Path] = (),
) -> HandlerProvider:
	return ReloadingProvider(reference, dirs) if reload else StaticProvider(reference)


# EOF
