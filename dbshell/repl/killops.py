# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Best-effort cancellation of remote operations started by this session."""

import logging
import time
from collections.abc import Callable
from typing import Optional

from rich.console import Console

from dbshell.client.connection import ConnectionLayer, EndpointRegistry
from dbshell.repl.signals import SessionContext

logger = logging.getLogger(__name__)

KILL_PROMPT = "do you want to kill the current op(s) on the server? (y/n): "


class KillCoordinator:
    """Offers to kill this session's in-progress operations before teardown.

    Every endpoint in the registry gets one short-lived admin connection for
    the whole pass. Failures on one endpoint are logged and the pass moves
    on to the next.
    The y/n answer is asked once and reused for the rest of the session.
    """

    def __init__(
        self,
        registry: EndpointRegistry,
        connections: ConnectionLayer,
        context: SessionContext,
        auto_kill: bool = False,
        disabled: bool = False,
        console: Optional[Console] = None,
        ask: Optional[Callable[[str], str]] = None,
        settle_seconds: float = 0.01,
    ):
        self.registry = registry
        self.connections = connections
        self.context = context
        self.auto_kill = auto_kill
        self.disabled = disabled
        self.console = console or Console()
        self._ask = ask or input
        self.settle_seconds = settle_seconds
        self._decision: Optional[bool] = None

    def _confirmed(self) -> bool:
        if self.auto_kill:
            return True
        if self._decision is None:
            self.console.print()
            try:
                answer = self._ask(KILL_PROMPT)
            except (EOFError, KeyboardInterrupt):
                answer = ""
            self._decision = answer.strip()[:1] in ("y", "Y")
        return self._decision

    def kill_tracked_operations(self) -> int:
        """Kill matching operations on every known endpoint.

        Returns:
            Number of kill requests issued
        """
        if self.disabled or not self.registry:
            return 0
        if self.context.at_prompt:
            # idle at the prompt, nothing of ours can be running
            return 0

        # give the current op a chance to finish
        time.sleep(self.settle_seconds)

        killed = 0
        for endpoint, identities in self.registry.snapshot().items():
            try:
                with self.connections.admin_connection(endpoint) as admin:
                    for op in admin.running_operations():
                        if op.client_identity not in identities:
                            continue
                        if not self._confirmed():
                            return killed
                        admin.kill_operation(op.operation_id)
                        killed += 1
            except Exception as e:
                logger.warning("Kill pass failed for %s: %s", endpoint, e)
        return killed
