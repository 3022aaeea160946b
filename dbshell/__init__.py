# Copyright (c) 2025 Kenneth Stott
#
# This source code is licensed under the Business Source License 1.1
# found in the LICENSE file in the root directory of this source tree.
#
# NOTICE: Use of this software for training artificial intelligence or
# machine learning models is strictly prohibited without explicit written
# permission from the copyright holder.

"""dbshell - interactive shell for a MongoDB-style data store.

Submodules:
- core: Configuration, errors and exit codes, helper-process registry
- repl: Balance scanner, continuation, signals, kill coordination, REPL loop
- client: Endpoint registry and admin commands (pymongo)
- runtime: Statement runtimes
- storage: Statement history
"""

__version__ = "0.1.0"
