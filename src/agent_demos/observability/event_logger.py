"""
Event logging for conversation observability.

Keeps an append-only record of turn boundaries, model calls, tool calls
and errors, in memory and optionally as a JSONL file.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


class EventType(str, Enum):
    """Observable events in a conversation's lifecycle."""

    CONVERSATION_END = "conversation_end"
    TURN_START = "turn_start"
    TURN_END = "turn_end"
    LLM_CALL = "llm_call"
    TOOL_CALL = "tool_call"
    ERROR = "error"


@dataclass
class Event:
    """A single observable event during a conversation."""

    type: EventType
    conversation_id: str
    agent_id: Optional[str] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=datetime.now)


class EventLogger:
    """
    Append-only event logger.

    Events are kept in memory and, when an output directory is given,
    also written to {output_dir}/{run_id}/events.jsonl as they arrive.
    """

    def __init__(self, run_id: str, output_dir: Optional[str] = None):
        """
        Initialize the EventLogger.

        Args:
            run_id: Unique identifier for this demo run.
            output_dir: Base directory for output files. If provided,
                events are written to {output_dir}/{run_id}/events.jsonl.
                If None, events are only stored in memory.
        """
        self.run_id = run_id
        self._events: List[Event] = []
        self._output_path: Optional[Path] = None

        if output_dir:
            dir_path = Path(output_dir) / run_id
            dir_path.mkdir(parents=True, exist_ok=True)
            self._output_path = dir_path / "events.jsonl"

    def _serialize_event(self, event: Event) -> Dict[str, Any]:
        """Convert an Event to a JSON-serializable dict."""
        data = asdict(event)
        data["type"] = event.type.value
        data["timestamp"] = event.timestamp.isoformat()
        return data

    def log(self, event: Event) -> None:
        """
        Log an event. Appends to in-memory list and JSONL file.

        Args:
            event: The event to log.
        """
        self._events.append(event)

        if self._output_path:
            line = json.dumps(self._serialize_event(event), default=str)
            with open(self._output_path, "a", encoding="utf-8") as f:
                f.write(line + "\n")

    def get_events(
        self,
        agent_name: Optional[str] = None,
        event_type: Optional[EventType] = None,
        conversation_id: Optional[str] = None,
    ) -> List[Event]:
        """
        Retrieve logged events with optional filtering.

        Args:
            agent_name: Filter by agent_id.
            event_type: Filter by EventType.
            conversation_id: Filter by conversation_id.

        Returns:
            List of matching events in chronological order.
        """
        events = self._events

        if agent_name is not None:
            events = [e for e in events if e.agent_id == agent_name]

        if event_type is not None:
            events = [e for e in events if e.type == event_type]

        if conversation_id is not None:
            events = [e for e in events if e.conversation_id == conversation_id]

        return events

    def get_token_breakdown(self) -> Dict[str, Dict[str, int]]:
        """
        Calculate per-agent token usage from LLM_CALL events.

        Returns:
            Dict mapping agent_id to token counts:
            {
                "WriterAgent": {"prompt": N, "completion": N, "total": N},
                "CriticAgent": {"prompt": N, "completion": N, "total": N},
            }
        """
        breakdown: Dict[str, Dict[str, int]] = {}

        for event in self.get_events(event_type=EventType.LLM_CALL):
            agent = event.agent_id or "unknown"
            counts = breakdown.setdefault(agent, {"prompt": 0, "completion": 0, "total": 0})
            counts["prompt"] += event.payload.get("prompt_tokens", 0)
            counts["completion"] += event.payload.get("completion_tokens", 0)
            counts["total"] += event.payload.get("total_tokens", 0)

        return breakdown

    def clear(self) -> None:
        """Clear all in-memory events. Does not delete the JSONL file."""
        self._events.clear()

    @property
    def event_count(self) -> int:
        """Total number of events logged."""
        return len(self._events)

    @property
    def output_path(self) -> Optional[Path]:
        """Path to the JSONL file, or None if writing to memory only."""
        return self._output_path
