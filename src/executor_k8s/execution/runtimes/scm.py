"""SCM URL parsing.

Turns the checkout URL of a build into the organization, repository, and
branch handed to the launcher::

    git@github.com:screwdriver-cd/hashr.git#addSD
    └─ scheme:host ┘└──── org ──┘ └repo┘   └branch┘

Without a ``#branch`` fragment the branch is ``master``. ``https://`` URLs
(``https://github.com/org/repo.git#branch``) are accepted as well.
"""

from __future__ import annotations

from executor_k8s.core.errors import MalformedLocatorError
from executor_k8s.execution.runtimes._types import ScmLocator

DEFAULT_BRANCH = "master"


def parse_scm_url(url: str) -> ScmLocator:
    """Parse ``url`` into an ``ScmLocator``.

    Raises:
        MalformedLocatorError: If no org/repo pair can be found.
    """
    if not isinstance(url, str) or not url.strip():
        raise MalformedLocatorError(str(url), "empty URL")

    location, _, branch = url.strip().partition("#")

    if "://" in location:
        rest = location.split("://", 1)[1]
        _, slash, path = rest.partition("/")
        if not slash:
            raise MalformedLocatorError(url, "no path after host")
    elif ":" in location:
        path = location.rsplit(":", 1)[1]
    else:
        raise MalformedLocatorError(url, "missing ':' before the repository path")

    org, slash, repo = path.partition("/")
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not slash or not org or not repo:
        raise MalformedLocatorError(url, "expected org/repo after the host")

    return ScmLocator(org=org, repo=repo, branch=branch or DEFAULT_BRANCH)
