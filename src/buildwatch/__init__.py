# Copyright 2025 Ben Mensi
# SPDX-License-Identifier: Apache-2.0

"""buildwatch - rebuild and retest on every source change."""

__version__ = "0.1.0"
