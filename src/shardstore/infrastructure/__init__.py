# SPDX-License-Identifier: MIT
"""Remote API transport and bandwidth limiting."""
