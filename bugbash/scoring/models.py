"""Typed domain models for fix-event scoring."""

from __future__ import annotations

import dataclasses
import typing as typ

import msgspec

from bugbash.scoring.errors import FixEventDecodeError

if typ.TYPE_CHECKING:
    import datetime as dt


class FixEventMessage(msgspec.Struct, frozen=True, kw_only=True):
    """One externally-reported fix event.

    Attributes
    ----------
    event_source : str
        Source-control provider name, e.g. ``"GitHub"``.
    repo_owner : str
        Organisation or user that owns the repository.
    repo_name : str
        Repository name.
    pull_request_id : int
        Pull request number; negative for events outside a pull request.
    trigger_user : str
        Login of the reporter; matched case-insensitively.
    total_fixed : int
        Fixes reported without a classification; one point each.
    classification_counts : dict[str, Any] | None
        Label tree whose leaves are fix counts, e.g.
        ``{"opt": {"semgrep": {"rule-x": 2}}}``.

    """

    event_source: str = msgspec.field(default="", name="eventSource")
    repo_owner: str = msgspec.field(default="", name="repositoryOwner")
    repo_name: str = msgspec.field(default="", name="repositoryName")
    pull_request_id: int = msgspec.field(default=0, name="pullRequestId")
    trigger_user: str = msgspec.field(default="", name="triggerUser")
    total_fixed: int = msgspec.field(default=0, name="fixed-bugs")
    classification_counts: dict[str, typ.Any] | None = msgspec.field(
        default=None, name="fixed-bug-types"
    )

    def with_normalized_user(self) -> FixEventMessage:
        """Return a copy whose ``trigger_user`` is lower-cased."""
        return msgspec.structs.replace(self, trigger_user=self.trigger_user.lower())


def decode_fix_event(payload: bytes | str) -> FixEventMessage:
    """Decode a JSON document into a :class:`FixEventMessage`.

    Raises
    ------
    FixEventDecodeError
        If the document is not valid JSON or fields have the wrong types.

    """
    try:
        return msgspec.json.decode(payload, type=FixEventMessage)
    except msgspec.DecodeError as exc:
        raise FixEventDecodeError(str(exc)) from exc


def convert_fix_event(payload: typ.Mapping[str, typ.Any]) -> FixEventMessage:
    """Convert an already-decoded mapping into a :class:`FixEventMessage`."""
    try:
        return msgspec.convert(payload, FixEventMessage)
    except msgspec.ValidationError as exc:
        raise FixEventDecodeError(str(exc)) from exc


@dataclasses.dataclass(frozen=True, slots=True)
class ParticipantInfo:
    """Lightweight view of an enrolled participant used while scoring."""

    id: str
    campaign_name: str
    scp_name: str
    login_name: str
    score: float = 0.0
    team_name: str | None = None
    joined_at: dt.datetime | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class ScoreApplication:
    """Result of applying one fix event to one participant."""

    participant: ParticipantInfo
    new_points: float
    prior_points: float

    @property
    def delta(self) -> float:
        """Signed adjustment applied to the participant's running score."""
        return self.new_points - self.prior_points

    def as_summary(self) -> dict[str, typ.Any]:
        """Return a JSON-serialisable view for API and actor results."""
        return {
            "participantId": self.participant.id,
            "campaign": self.participant.campaign_name,
            "loginName": self.participant.login_name,
            "newPoints": self.new_points,
            "priorPoints": self.prior_points,
            "delta": self.delta,
        }


@dataclasses.dataclass(frozen=True, slots=True)
class ClassificationLeaf:
    """Leaf of the classification tree carrying a fix count."""

    count: float


@dataclasses.dataclass(frozen=True, slots=True)
class ClassificationNode:
    """Inner node mapping labels to further entries."""

    children: dict[str, ClassificationEntry] = dataclasses.field(
        default_factory=dict
    )


@dataclasses.dataclass(frozen=True, slots=True)
class MalformedClassification:
    """Entry whose decoded value was neither numeric nor a mapping."""

    type_name: str


type ClassificationEntry = (
    ClassificationLeaf | ClassificationNode | MalformedClassification
)
