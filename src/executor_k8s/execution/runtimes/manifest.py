"""Job manifest rendering.

The Job body sent to the cluster is produced from a YAML template with
``{{placeholder}}`` tokens. Rendering is a pure text substitution over a
fixed set of names followed by ``yaml.safe_load``; nothing in the template
is ever evaluated.

Placeholders:
    build_id, job_id, pipeline_id, git_org, git_repo, git_branch, job_name

Examples:
    >>> template = load_template()            # once, at executor construction
    >>> manifest = render(template, {"build_id": "abc", ...})
    >>> manifest.name
    'abc'

Guardrails:
    - Unknown ``{{tokens}}`` are left as-is; authoring the template is not
      this module's concern
    - A template that does not render to a YAML mapping raises
      ``TemplateParseError``
    - Values are inserted verbatim, not YAML-escaped: a value containing
      ``"`` inside a double-quoted scalar renders invalid YAML

Tags:
    manifest, template, yaml, kubernetes, job
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from pathlib import Path

import yaml

from executor_k8s.core.errors import TemplateNotFoundError, TemplateParseError
from executor_k8s.core.logging import get_logger
from executor_k8s.execution.runtimes._types import BuildRequest, RenderedManifest, ScmLocator

logger = get_logger(__name__)

DEFAULT_TEMPLATE_PATH = Path(__file__).resolve().parents[2] / "config" / "job.yaml.tim"

MANIFEST_PLACEHOLDERS: frozenset[str] = frozenset({
    "build_id",
    "job_id",
    "pipeline_id",
    "git_org",
    "git_repo",
    "git_branch",
    "job_name",
})

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def load_template(path: str | Path | None = None) -> str:
    """Read a job template from disk (the packaged one by default).

    Raises:
        TemplateNotFoundError: If the file does not exist.
    """
    template_path = Path(path) if path is not None else DEFAULT_TEMPLATE_PATH
    if not template_path.is_file():
        raise TemplateNotFoundError(template_path)

    logger.debug("manifest.load_template", path=str(template_path))
    return template_path.read_text(encoding="utf-8")


def substitute(template: str, values: Mapping[str, str]) -> str:
    """Replace recognized ``{{placeholder}}`` tokens in ``template``."""

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in MANIFEST_PLACEHOLDERS and name in values:
            return str(values[name])
        return match.group(0)

    return _PLACEHOLDER_RE.sub(_replace, template)


def render(template: str, values: Mapping[str, str]) -> RenderedManifest:
    """Substitute ``values`` into ``template`` and parse the result.

    Raises:
        TemplateParseError: If the rendered text is not a YAML mapping.
    """
    text = substitute(template, values)
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise TemplateParseError(f"Invalid YAML in rendered manifest: {e}", cause=e) from e

    if not isinstance(document, dict):
        raise TemplateParseError(
            f"Rendered manifest must be a mapping, got {type(document).__name__}"
        )
    return RenderedManifest(document=document)


def build_template_values(request: BuildRequest, locator: ScmLocator) -> dict[str, str]:
    """Placeholder values for one build."""
    return {
        "build_id": request.build_id,
        "job_id": request.job_id,
        "pipeline_id": request.pipeline_id,
        "git_org": locator.org,
        "git_repo": locator.repo,
        "git_branch": locator.branch,
        "job_name": request.job_name,
    }
