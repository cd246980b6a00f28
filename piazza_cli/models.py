"""Typed views over the JSON the Piazza API returns.

Only the fields something in this package reads are modelled; everything
else in a response is ignored. Every ``from_json`` accepts a plain dict and
tolerates missing keys, since the API omits empty fields freely.
"""
import re
from dataclasses import dataclass, field
from typing import List, Optional

from piazza_cli.config import CLASS_URL, RESOURCE_URL_TEMPLATE


def _slug(value):
    return re.sub(r'\s+', '', value or '').lower()


@dataclass
class Network:
    """A class (Piazza calls them networks) the user is enrolled in."""
    id: str = ""
    name: str = ""
    course_number: str = ""
    short_number: str = ""
    term: str = ""
    school_short: str = ""
    school_ext: str = ""
    status: str = ""

    @classmethod
    def from_json(cls, data):
        return cls(
            id=data.get('id') or "",
            name=data.get('name') or "",
            course_number=data.get('course_number') or "",
            short_number=data.get('short_number') or "",
            term=data.get('term') or "",
            school_short=data.get('school_short') or "",
            school_ext=data.get('school_ext') or "",
            status=data.get('status') or "",
        )

    @property
    def resource_url(self):
        """URL of the class page that embeds the resource listing."""
        course = _slug(self.short_number or self.course_number)
        term = _slug(self.term)
        if self.school_ext and term and course:
            return RESOURCE_URL_TEMPLATE.format(
                school_ext=self.school_ext, term=term, course=course)
        return f"{CLASS_URL}{self.id}?cid=resources"


@dataclass
class FeedEntry:
    """One top-level thread in a class feed."""
    id: str = ""
    subject: str = ""
    type: str = ""
    nr: int = 0
    tags: List[str] = field(default_factory=list)
    unique_views: int = 0
    num_favorites: int = 0
    modified: str = ""

    @classmethod
    def from_json(cls, data):
        return cls(
            id=data.get('id') or "",
            subject=data.get('subject') or "",
            type=data.get('type') or "",
            nr=data.get('nr') or 0,
            tags=list(data.get('tags') or []),
            unique_views=data.get('unique_views') or 0,
            num_favorites=data.get('num_favorites') or 0,
            modified=data.get('modified') or "",
        )


@dataclass
class Feed:
    """Response of ``network.get_my_feed``."""
    error: Optional[object] = None
    entries: List[FeedEntry] = field(default_factory=list)

    @classmethod
    def from_json(cls, data):
        result = data.get('result') or {}
        return cls(
            error=data.get('error'),
            entries=[FeedEntry.from_json(e) for e in result.get('feed') or []],
        )


@dataclass(frozen=True)
class Revision:
    """One version of a post's text. ``history[0]`` is the newest."""
    content: str = ""
    subject: str = ""
    created: str = ""
    uid: str = ""

    @classmethod
    def from_json(cls, data):
        return cls(
            content=data.get('content') or "",
            subject=data.get('subject') or "",
            created=data.get('created') or "",
            uid=data.get('uid') or "",
        )


@dataclass
class Post:
    """A question, note or reply together with its replies.

    A post without ``history`` but with a ``subject`` (followups and their
    feedback) gets one revision holding that subject, so followup text shows
    up in rendered threads. Rendering only ``history`` would drop it.
    """
    id: str = ""
    type: str = ""
    revisions: List[Revision] = field(default_factory=list)
    children: List["Post"] = field(default_factory=list)

    @classmethod
    def from_json(cls, data):
        history = data.get('history') or []
        revisions = [Revision.from_json(h) for h in history]
        if not revisions and data.get('subject'):
            revisions = [Revision(
                content=data['subject'],
                created=data.get('created') or "",
                uid=data.get('uid') or "",
            )]
        return cls(
            id=data.get('id') or "",
            type=data.get('type') or "",
            revisions=revisions,
            children=[cls.from_json(c) for c in data.get('children') or []],
        )


@dataclass
class ContentResponse:
    """Response of ``content.get``."""
    error: Optional[object] = None
    post: Post = field(default_factory=Post)

    @classmethod
    def from_json(cls, data):
        return cls(
            error=data.get('error'),
            post=Post.from_json(data.get('result') or {}),
        )


@dataclass
class ResourceConfig:
    resource_type: str = ""
    section: str = ""
    date: str = ""


@dataclass
class Resource:
    """An entry of a class's resources page (link, file or text)."""
    id: str = ""
    subject: str = ""
    content: str = ""
    created: str = ""
    config: ResourceConfig = field(default_factory=ResourceConfig)

    @classmethod
    def from_json(cls, data):
        config = data.get('config') or {}
        return cls(
            id=data.get('id') or "",
            subject=data.get('subject') or "",
            content=data.get('content') or "",
            created=data.get('created') or "",
            config=ResourceConfig(
                resource_type=config.get('resource_type') or "",
                section=config.get('section') or "",
                date=config.get('date') or "",
            ),
        )


@dataclass
class UserStatus:
    """The parts of ``user.status`` this package reads."""
    aid: str = ""
    error: Optional[object] = None
    id: str = ""
    name: str = ""
    email: str = ""
    networks: List[Network] = field(default_factory=list)
    email_prefs: dict = field(default_factory=dict)
    feed: List[FeedEntry] = field(default_factory=list)

    @classmethod
    def from_json(cls, data):
        result = data.get('result') or {}
        config = result.get('config') or {}
        prefetch = result.get('feed_prefetch') or {}
        return cls(
            aid=data.get('aid') or "",
            error=data.get('error'),
            id=result.get('id') or "",
            name=result.get('name') or "",
            email=result.get('email') or "",
            networks=[Network.from_json(n) for n in result.get('networks') or []],
            email_prefs=dict(config.get('email_prefs') or {}),
            feed=[FeedEntry.from_json(e) for e in prefetch.get('feed') or []],
        )
