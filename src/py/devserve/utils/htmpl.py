from typing import Callable, Iterable, Iterator, LiteralString, Union, cast

from mypy_extensions import KwArg, VarArg

# --
# HTMPL builds HTML documents out of plain nodes, as in `H.ul(H.li("item"))`,
# which are then serialized with `html()`.

HTML_EMPTY: list[LiteralString] = "base br col hr img input link meta source wbr".split()
HTML_ESCAPED = str.maketrans(
	{"&": "&amp;", "<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#x27;"}
)
HTML_QUOTED = str.maketrans({"&": "&amp;", '"': "&quot;"})


def escape(text: str) -> str:
	return text.translate(HTML_ESCAPED)


def quoted(text: str | None) -> str:
	return text.translate(HTML_QUOTED) if text else ""


TNodeContent = Union["Node", str, int, float]
TAttributeContent = str | bool | int | float | None


class Node:
	__slots__ = ["name", "children", "attributes"]

	def __init__(
		self,
		name: str,
		children: Iterable[TNodeContent] | None = None,
		attributes: dict[str, TAttributeContent] | None = None,
	):
		self.name: str = name
		self.children: list[TNodeContent] = list(children) if children else []
		self.attributes: dict[str, TAttributeContent] = attributes or {}

	def iterHTML(self) -> Iterator[str]:
		if self.name == "#text":
			yield escape(str(self.attributes.get("#value") or ""))
		else:
			yield f"<{self.name}"
			for k, v in self.attributes.items():
				if v is True or v is None:
					yield f" {k}"
				elif v is not False:
					yield f' {k}="{quoted(str(v))}"'
			yield ">"
			# Empty elements have no children nor closing tag
			if self.name not in HTML_EMPTY:
				for _ in self.children:
					if isinstance(_, Node):
						yield from _.iterHTML()
					else:
						yield escape(str(_))
				yield f"</{self.name}>"

	def __str__(self) -> str:
		return "".join(self.iterHTML())


def text(value: str) -> Node:
	return Node("#text", attributes={"#value": value})


NodeFactory = Callable[[VarArg(TNodeContent), KwArg(TAttributeContent)], Node]


def nodeFactory(name: str) -> NodeFactory:
	def f(*children: TNodeContent, **attributes: TAttributeContent) -> Node:
		# `_` stands for `class`, which is a reserved word
		attrs = {("class" if k == "_" else k): v for k, v in attributes.items()}
		return Node(
			name, [text(_) if isinstance(_, str) else _ for _ in children], attrs
		)

	f.__name__ = name
	return cast(NodeFactory, f)


HTML_TAGS: list[LiteralString] = """\
a body div em h1 h2 head hr html li link meta p pre section span strong style
title ul\
""".split()


class Markup:
	__slots__ = ["_factories"]

	def __init__(self, factories: dict[str, NodeFactory]):
		self._factories: dict[str, NodeFactory] = factories

	def __getattr__(self, name: str) -> NodeFactory:
		try:
			return self._factories[name]
		except KeyError:
			raise AttributeError(
				f"No tag {name}, pick one of {','.join(self._factories)}"
			) from None


H: Markup = Markup({_: nodeFactory(_) for _ in HTML_TAGS})


def html(*nodes: Node, doctype: str | None = None) -> Iterator[str]:
	if doctype:
		yield f"<!DOCTYPE {doctype}>"
	for _ in nodes:
		yield from _.iterHTML()


# EOF
