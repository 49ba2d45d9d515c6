"""Typed Block Kit builders.

Each block validates on construction and renders with ``to_dict()``, so a
malformed payload fails where it is built instead of at Slack.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

HEADER_MAX = 150
BUTTON_STYLES = (None, "primary", "danger")


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, ending with an ellipsis when shortened."""
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "\u2026"


def _require(text: Optional[str], what: str) -> str:
    if not text or not text.strip():
        raise ValueError(f"{what} text must not be empty")
    return text


def plain_text(text: str, emoji: bool = True) -> Dict[str, Any]:
    return {"type": "plain_text", "text": _require(text, "plain_text"), "emoji": emoji}


def mrkdwn(text: str) -> Dict[str, Any]:
    return {"type": "mrkdwn", "text": _require(text, "mrkdwn")}


@dataclass(frozen=True)
class Button:
    text: str
    action_id: Optional[str] = None
    url: Optional[str] = None
    value: Optional[str] = None
    style: Optional[str] = None

    def __post_init__(self):
        _require(self.text, "button")
        if self.style not in BUTTON_STYLES:
            raise ValueError(f"unknown button style {self.style!r}")
        if not (self.url or self.action_id):
            raise ValueError("button needs a url or an action_id")

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"type": "button", "text": plain_text(self.text)}
        if self.action_id:
            d["action_id"] = self.action_id
        if self.url:
            d["url"] = self.url
        if self.value:
            d["value"] = self.value
        if self.style:
            d["style"] = self.style
        return d


@dataclass(frozen=True)
class HeaderBlock:
    text: str

    def __post_init__(self):
        _require(self.text, "header")
        if len(self.text) > HEADER_MAX:
            raise ValueError(f"header text longer than {HEADER_MAX} characters")

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "header", "text": plain_text(self.text)}


@dataclass(frozen=True)
class SectionBlock:
    text: str
    accessory: Optional[Button] = None

    def __post_init__(self):
        _require(self.text, "section")

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"type": "section", "text": mrkdwn(self.text)}
        if self.accessory:
            d["accessory"] = self.accessory.to_dict()
        return d


@dataclass(frozen=True)
class ImageBlock:
    image_url: str
    alt_text: str

    def __post_init__(self):
        _require(self.image_url, "image_url")
        _require(self.alt_text, "alt_text")

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "image", "image_url": self.image_url, "alt_text": self.alt_text}


@dataclass(frozen=True)
class ActionsBlock:
    elements: Sequence[Button]

    def __post_init__(self):
        if not self.elements:
            raise ValueError("actions block needs at least one element")

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "actions", "elements": [e.to_dict() for e in self.elements]}


@dataclass(frozen=True)
class ContextBlock:
    texts: Sequence[str]

    def __post_init__(self):
        if not self.texts:
            raise ValueError("context block needs at least one element")

    def to_dict(self) -> Dict[str, Any]:
        return {"type": "context", "elements": [mrkdwn(t) for t in self.texts]}


@dataclass(frozen=True)
class InputBlock:
    block_id: str
    action_id: str
    label: str
    placeholder: Optional[str] = None
    multiline: bool = False
    optional: bool = False
    hint: Optional[str] = None
    max_length: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        element: Dict[str, Any] = {"type": "plain_text_input", "action_id": self.action_id, "multiline": self.multiline}
        if self.max_length:
            element["max_length"] = self.max_length
        if self.placeholder:
            element["placeholder"] = plain_text(self.placeholder)
        d: Dict[str, Any] = {
            "type": "input",
            "block_id": self.block_id,
            "label": plain_text(self.label),
            "element": element,
            "optional": self.optional,
        }
        if self.hint:
            d["hint"] = plain_text(self.hint)
        return d


Block = Union[HeaderBlock, SectionBlock, ImageBlock, ActionsBlock, ContextBlock, InputBlock]


@dataclass(frozen=True)
class Modal:
    title: str
    callback_id: str
    blocks: Sequence[Block] = field(default_factory=tuple)
    submit: str = "Create"
    close: str = "Cancel"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "modal",
            "callback_id": self.callback_id,
            "title": plain_text(self.title),
            "submit": plain_text(self.submit),
            "close": plain_text(self.close),
            "blocks": render(self.blocks),
        }


def render(blocks: Sequence[Block]) -> List[Dict[str, Any]]:
    return [b.to_dict() for b in blocks]
