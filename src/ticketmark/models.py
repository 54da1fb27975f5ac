import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping


def custom_as_dict_factory(data) -> dict:
    def convert_value(obj):
        if isinstance(obj, Enum):
            return obj.value
        return obj

    return {k: convert_value(v) for k, v in data if not callable(v)}


class NodeType(Enum):
    """Node kinds of the Atlassian Document Format understood by this package."""

    DOC = 'doc'
    PARAGRAPH = 'paragraph'
    HEADING = 'heading'
    CODE_BLOCK = 'codeBlock'
    BULLET_LIST = 'bulletList'
    ORDERED_LIST = 'orderedList'
    LIST_ITEM = 'listItem'
    BLOCKQUOTE = 'blockquote'
    PANEL = 'panel'
    RULE = 'rule'
    HARD_BREAK = 'hardBreak'
    MENTION = 'mention'
    INLINE_CARD = 'inlineCard'
    TEXT = 'text'

    @classmethod
    def from_node(cls, node: Any) -> 'NodeType | None':
        """Return the kind of an ADF node, or None for unknown or malformed nodes."""
        if not isinstance(node, dict):
            return None
        try:
            return cls(node.get('type'))
        except ValueError:
            return None


class MarkType(Enum):
    """Formatting marks that can be attached to a text node."""

    STRONG = 'strong'
    EM = 'em'
    CODE = 'code'
    STRIKE = 'strike'
    UNDERLINE = 'underline'
    LINK = 'link'


class DescriptionFormat(Enum):
    """The formats a ticket description may be stored in."""

    ADF = 'adf'
    WIKI = 'wiki'
    MARKDOWN = 'markdown'
    PLAINTEXT = 'plaintext'


class DeploymentKind(Enum):
    """Selects the native description format of the ticket store.

    Cloud deployments store ADF documents, server deployments store wiki markup.
    """

    CLOUD = 'cloud'
    SERVER = 'server'


@dataclass
class BaseModel:
    def as_dict(self) -> dict:
        """Dumps dataclass into dictionary.

        Enums are dumped as their values and callables are left out.
        """

        return dataclasses.asdict(self, dict_factory=custom_as_dict_factory)


@dataclass
class EnrichedTicketMetadata(BaseModel):
    """Live data about a referenced ticket, supplied by the caller at render time."""

    title: str
    status: str | None = None

    @classmethod
    def from_value(cls, value: Any) -> 'EnrichedTicketMetadata | None':
        if isinstance(value, cls):
            return value
        if isinstance(value, dict) and value.get('title') is not None:
            status = value.get('status')
            return cls(title=str(value['title']), status=str(status) if status else None)
        return None


@dataclass
class RenderNode(BaseModel):
    """A node of the presentation tree produced by the ADF renderer."""

    tag: str
    text: str | None = None
    children: list['RenderNode'] = field(default_factory=list)
    attrs: dict[str, Any] = field(default_factory=dict)
    style: str | None = None
    """A Textual style string, e.g. 'bold $primary'."""
    classes: list[str] = field(default_factory=list)
    action: Callable[[], None] | None = field(default=None, compare=False, repr=False)
    """Invoked when the user activates the node. Only set on activatable nodes."""

    @property
    def plain(self) -> str:
        """The concatenated text of this node and all of its descendants."""
        if self.text is not None:
            return self.text
        return ''.join(child.plain for child in self.children)

    def find_all(self, tag: str) -> list['RenderNode']:
        found = []
        stack = [self]
        while stack:
            node = stack.pop()
            if node.tag == tag:
                found.append(node)
            stack.extend(reversed(node.children))
        return found


@dataclass
class RenderOptions:
    """Options for rendering an ADF document."""

    enriched_metadata: Mapping[str, EnrichedTicketMetadata | dict] | None = None
    """Ticket key to metadata used to enrich inline cards."""
    on_reference_activated: Callable[[str], None] | None = None
    """Called with the ticket key when an inline card is activated."""
    code_theme: str | None = None
    """Pygments style name for highlighted code, defaults to DEFAULT_CODE_THEME."""
