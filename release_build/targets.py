"""
Named build targets with ordering dependencies.

A TargetGraph holds targets and "runs before" edges. Running a target
executes it together with all of its transitive dependencies in
topological order, stopping at the first failure.
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from loguru import logger
from rich.console import Console
from rich.table import Table

from .errors import TargetError
from .utils import format_duration

Action = Callable[[object], None]


@dataclass
class Target:
    """A named build step. Targets without an action only group dependencies."""

    name: str
    action: Optional[Action] = None
    description: str = ''
    dependencies: List[str] = field(default_factory=list)

    @property
    def is_aggregate(self) -> bool:
        return self.action is None


@dataclass(frozen=True)
class TargetTiming:
    """How long an executed target took."""

    name: str
    seconds: float


class TargetGraph:
    """Directed acyclic graph of build targets."""

    def __init__(self):
        self._targets: Dict[str, Target] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._targets

    def __len__(self) -> int:
        return len(self._targets)

    def add(self, name: str, action: Optional[Action] = None, description: str = '') -> Target:
        """
        Register a target.

        Raises:
            TargetError: If a target with the same name already exists
        """
        if name in self._targets:
            raise TargetError(f'Target already defined: {name}')
        target = Target(name=name, action=action, description=description)
        self._targets[name] = target
        return target

    def get(self, name: str) -> Target:
        try:
            return self._targets[name]
        except KeyError:
            known = ', '.join(sorted(self._targets))
            raise TargetError(f'Unknown target: {name} (available: {known})') from None

    def depends(self, name: str, *dependencies: str) -> None:
        """
        Declare that each dependency runs before the target.

        Raises:
            TargetError: If any name is unknown
        """
        target = self.get(name)
        for dependency in dependencies:
            self.get(dependency)
            if dependency not in target.dependencies:
                target.dependencies.append(dependency)

    def chain(self, *names: str) -> None:
        """Declare a sequence a ==> b ==> c, each running before the next."""
        for before, after in zip(names, names[1:]):
            self.depends(after, before)

    def names(self) -> List[str]:
        """Target names in declaration order."""
        return list(self._targets)

    def execution_order(self, name: str) -> List[str]:
        """
        Return the target and its transitive dependencies in execution order.

        Dependencies are visited depth-first in declaration order, so the
        order is deterministic for a given graph.

        Raises:
            TargetError: If the target is unknown or the graph has a cycle
        """
        order: List[str] = []
        done = set()
        visiting: List[str] = []

        def visit(current: str) -> None:
            if current in done:
                return
            if current in visiting:
                cycle = visiting[visiting.index(current):] + [current]
                raise TargetError(f'Dependency cycle: {" ==> ".join(reversed(cycle))}')
            visiting.append(current)
            for dependency in self.get(current).dependencies:
                visit(dependency)
            visiting.pop()
            done.add(current)
            order.append(current)

        visit(name)
        return order

    def run(self, name: str, context, console: Optional[Console] = None) -> List[TargetTiming]:
        """
        Run a target and everything it depends on.

        The first failing target aborts the run and its exception propagates;
        no later target is started.

        Args:
            name: Target to run
            context: Object passed to every target action
            console: Console for the timing summary (optional)

        Returns:
            List[TargetTiming]: Timings of the executed targets, in order
        """
        order = self.execution_order(name)
        logger.info(f'Building target {name} ({len(order)} target(s): {", ".join(order)})')

        timings: List[TargetTiming] = []
        for target_name in order:
            target = self._targets[target_name]
            start = time.monotonic()
            if target.is_aggregate:
                logger.debug(f'Target {target_name} has no action')
            else:
                logger.info(f'▶ Starting target: {target_name}')
                try:
                    target.action(context)
                except Exception:
                    elapsed = time.monotonic() - start
                    logger.error(f'✖ Target {target_name} failed after {format_duration(elapsed)}')
                    raise
            elapsed = time.monotonic() - start
            timings.append(TargetTiming(name=target_name, seconds=elapsed))
            if not target.is_aggregate:
                logger.info(f'✔ Finished target: {target_name} in {format_duration(elapsed)}')

        if console is not None:
            console.print(timing_table(timings))
        return timings

    def describe(self) -> Table:
        """Rich table listing targets and their direct dependencies."""
        table = Table(title='Build targets')
        table.add_column('Target', style='bold cyan')
        table.add_column('Depends on')
        table.add_column('Description')
        for target in self._targets.values():
            table.add_row(target.name, ', '.join(target.dependencies), target.description)
        return table


def timing_table(timings: List[TargetTiming]) -> Table:
    """Rich table summarising how long each target took."""
    table = Table(title='Build time report')
    table.add_column('Target', style='bold')
    table.add_column('Duration', justify='right')
    total = 0.0
    for timing in timings:
        table.add_row(timing.name, format_duration(timing.seconds))
        total += timing.seconds
    table.add_row('Total', format_duration(total), style='bold green')
    return table
