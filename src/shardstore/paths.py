# SPDX-License-Identifier: MIT
"""Path canonicalisation for remote storage paths.

Every path handed to the remote API goes through :func:`normalize_path`
first, so ``"chunks/ab/"`` and ``"/chunks/ab"`` address the same folder.
"""

from __future__ import annotations


def normalize_path(path: str) -> str:
    """Return *path* with a leading slash and without trailing slashes.

    The empty string is returned unchanged: joined onto a storage root it
    addresses the root itself.  A path made only of slashes collapses to
    ``"/"``.

    Examples::

        >>> normalize_path("chunks/ab/")
        '/chunks/ab'
        >>> normalize_path("/")
        '/'
        >>> normalize_path("")
        ''
    """
    if not path:
        return path
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return path


def normalize_root(root: str) -> str:
    """Canonicalise a storage root; an empty root means the remote root ``/``."""
    return normalize_path(root) or "/"


def join_root(root: str, path: str) -> str:
    """Join a normalized storage *root* and a relative storage *path*."""
    path = normalize_path(path)
    if root == "/":
        return path or "/"
    if path == "/":
        return root
    return root + path
