"""
AgentFramework: coordination layer for the index advisor agent.

Manages agent registration, tool execution with result tracking, and event
routing to subscribers (CLI logging, HTTP app).
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger("index_advisor")


class TaskStatus(Enum):
    SUCCESS = "success"
    FAILED = "failed"


class EventType(Enum):
    INDEX_SNAPSHOT_COLLECTED = "index_snapshot_collected"
    INDEX_MAINTENANCE_RECOMMENDED = "index_maintenance_recommended"
    UNUSED_INDEX_DETECTED = "unused_index_detected"


@dataclass
class TaskResult:
    """Result of an agent tool execution."""
    task_id: str
    agent_name: str
    tool_name: str
    status: TaskStatus
    message: str
    data: Any = None
    error: Optional[BaseException] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_seconds: float = 0.0

    def __str__(self):
        return f"[{self.status.value}] {self.agent_name}.{self.tool_name}: {self.message}"


@dataclass
class AgentTool:
    """Registered tool (method) within an agent."""
    name: str
    description: str
    handler: Callable


@dataclass
class Event:
    """Event emitted by an agent for subscribers."""
    event_type: EventType
    source_agent: str
    data: dict = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class BaseAgent(ABC):
    """Abstract base class for agents."""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description
        self.tools: dict[str, AgentTool] = {}
        self._framework: Optional[AgentFramework] = None
        self._results: list[TaskResult] = []

    def register_tool(self, name: str, handler: Callable, description: str = "") -> None:
        """Register a tool method with this agent."""
        self.tools[name] = AgentTool(name=name, description=description, handler=handler)

    async def execute_tool(self, tool_name: str, **kwargs) -> TaskResult:
        """
        Execute a registered tool and track the result.
        Failures are captured on the TaskResult (status FAILED, error set)
        and carry no data.
        """
        task_id = str(uuid.uuid4())[:8]
        if tool_name not in self.tools:
            return TaskResult(
                task_id=task_id,
                agent_name=self.name,
                tool_name=tool_name,
                status=TaskStatus.FAILED,
                message=f"Tool '{tool_name}' not found in {self.name}",
                error=KeyError(tool_name),
            )

        tool = self.tools[tool_name]
        start = time.time()

        logger.info(f"[{self.name}] Executing: {tool_name}")

        try:
            if asyncio.iscoroutinefunction(tool.handler):
                result_data = await tool.handler(**kwargs)
            else:
                result_data = tool.handler(**kwargs)

            duration = time.time() - start
            result = TaskResult(
                task_id=task_id,
                agent_name=self.name,
                tool_name=tool_name,
                status=TaskStatus.SUCCESS,
                message=f"Completed in {duration:.2f}s",
                data=result_data,
                duration_seconds=duration,
            )
        except Exception as e:
            duration = time.time() - start
            logger.error(f"[{self.name}] {tool_name} failed: {e}")
            result = TaskResult(
                task_id=task_id,
                agent_name=self.name,
                tool_name=tool_name,
                status=TaskStatus.FAILED,
                message=f"Failed: {str(e)}",
                error=e,
                duration_seconds=duration,
            )

        self._results.append(result)
        logger.info(str(result))
        return result

    def emit_event(self, event_type: EventType, data: dict = None) -> None:
        """Emit an event for subscribers."""
        if self._framework:
            event = Event(
                event_type=event_type,
                source_agent=self.name,
                data=data or {},
            )
            self._framework.dispatch_event(event)

    @abstractmethod
    def register_tools(self) -> None:
        """Register all tools for this agent. Must be implemented by subclasses."""
        pass

    @abstractmethod
    async def run_cycle(self, context: dict = None) -> list[TaskResult]:
        """Execute one full cycle. Must be implemented by subclasses."""
        pass

    def get_results_summary(self) -> dict:
        """Return summary of all task results."""
        total = len(self._results)
        success = sum(1 for r in self._results if r.status == TaskStatus.SUCCESS)
        failed = sum(1 for r in self._results if r.status == TaskStatus.FAILED)
        return {
            "agent": self.name,
            "total_tasks": total,
            "successful": success,
            "failed": failed,
            "success_rate": f"{(success / total * 100):.1f}%" if total > 0 else "N/A",
        }


class AgentFramework:
    """Registers agents and routes their events to subscribers."""

    def __init__(self):
        self.agents: dict[str, BaseAgent] = {}
        self._event_handlers: dict[EventType, list[Callable]] = {}
        self._event_log: list[Event] = []

    def register_agent(self, agent: BaseAgent) -> None:
        """Register an agent with the framework."""
        agent._framework = self
        agent.register_tools()
        self.agents[agent.name] = agent
        logger.info(f"Registered agent: {agent.name} ({len(agent.tools)} tools)")

    def subscribe(self, event_type: EventType, handler: Callable) -> None:
        """Subscribe to events emitted by agents."""
        if event_type not in self._event_handlers:
            self._event_handlers[event_type] = []
        self._event_handlers[event_type].append(handler)

    def dispatch_event(self, event: Event) -> None:
        """Dispatch an event to all subscribers. A failing handler never aborts the run."""
        self._event_log.append(event)
        logger.debug(f"Event: {event.event_type.value} from {event.source_agent}")
        for handler in self._event_handlers.get(event.event_type, []):
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Event handler error: {e}")

    def get_event_log(self) -> list[Event]:
        return list(self._event_log)
