# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""Bookkeeping for processes the shell spawns (editors, helper tools)."""

import logging
import subprocess
import threading

logger = logging.getLogger(__name__)


class ProgramRegistry:
    """Tracks spawned helper processes so a dying shell can take them along."""

    def __init__(self):
        self._lock = threading.RLock()
        self._procs: list[subprocess.Popen] = []

    def spawn(self, args, **kwargs) -> subprocess.Popen:
        """Start a process and remember it until it is reaped."""
        proc = subprocess.Popen(args, **kwargs)
        with self._lock:
            self._procs.append(proc)
        logger.debug("Spawned helper process %s: %s", proc.pid, args)
        return proc

    def run(self, args, **kwargs) -> int:
        """Spawn a process, wait for it and return its exit status."""
        proc = self.spawn(args, **kwargs)
        try:
            return proc.wait()
        finally:
            self.forget(proc)

    def forget(self, proc: subprocess.Popen) -> None:
        with self._lock:
            if proc in self._procs:
                self._procs.remove(proc)

    @property
    def running(self) -> list[subprocess.Popen]:
        with self._lock:
            return [p for p in self._procs if p.poll() is None]

    def terminate_all(self) -> None:
        """Best-effort terminate of every tracked process that is still alive.

        Called from fatal-signal context, so nothing here waits or raises.
        """
        for proc in self.running:
            try:
                proc.terminate()
            except OSError as e:
                logger.debug("Failed to terminate helper %s: %s", proc.pid, e)
