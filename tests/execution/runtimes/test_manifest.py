"""Tests for job template loading and rendering."""

from __future__ import annotations

import pytest

from executor_k8s.core.errors import TemplateNotFoundError, TemplateParseError
from executor_k8s.execution.runtimes import (
    MANIFEST_PLACEHOLDERS,
    BuildRequest,
    ScmLocator,
    build_template_values,
    load_template,
    render,
)
from executor_k8s.execution.runtimes.manifest import DEFAULT_TEMPLATE_PATH, substitute

from conftest import BUILD_ID, JOB_ID, JOB_NAME, PIPELINE_ID, SCM_URL


def _values(**overrides) -> dict[str, str]:
    values = {
        "build_id": BUILD_ID,
        "job_id": JOB_ID,
        "pipeline_id": PIPELINE_ID,
        "git_org": "screwdriver-cd",
        "git_repo": "hashr",
        "git_branch": "master",
        "job_name": JOB_NAME,
    }
    values.update(overrides)
    return values


# ── Substitution ─────────────────────────────────────────────────────────


class TestSubstitute:
    def test_known_placeholders(self):
        assert substitute("{{build_id}}/{{ job_name }}", _values()) == f"{BUILD_ID}/{JOB_NAME}"

    def test_unknown_placeholder_left_intact(self):
        assert substitute("image: {{image}}", {"image": "x"}) == "image: {{image}}"

    def test_missing_value_left_intact(self):
        assert substitute("{{git_branch}}", {}) == "{{git_branch}}"

    def test_placeholder_set(self):
        assert MANIFEST_PLACEHOLDERS == {
            "build_id", "job_id", "pipeline_id", "git_org", "git_repo", "git_branch", "job_name",
        }


# ── Rendering ────────────────────────────────────────────────────────────


class TestRender:
    def test_render_test_template(self, test_template):
        manifest = render(test_template, _values(git_branch="addSD"))
        assert manifest.to_json() == {
            "metadata": {"name": BUILD_ID, "job": JOB_ID, "pipeline": PIPELINE_ID},
            "command": ["/opt/screwdriver/launch screwdriver-cd hashr addSD main"],
        }
        assert manifest.name == BUILD_ID
        assert manifest.job == JOB_ID
        assert manifest.pipeline == PIPELINE_ID

    def test_invalid_yaml(self):
        with pytest.raises(TemplateParseError):
            render("metadata: [unclosed", _values())

    def test_non_mapping(self):
        with pytest.raises(TemplateParseError):
            render("- just\n- a list\n", _values())

    def test_empty_document(self):
        with pytest.raises(TemplateParseError):
            render("", _values())


class TestPackagedTemplate:
    def test_default_path_exists(self):
        assert DEFAULT_TEMPLATE_PATH.is_file()

    def test_renders_a_batch_job(self):
        manifest = render(load_template(), _values())
        doc = manifest.to_json()
        assert doc["apiVersion"] == "batch/v1"
        assert doc["kind"] == "Job"
        assert manifest.name == BUILD_ID
        assert doc["metadata"]["labels"]["sdbuild"] == BUILD_ID

    def test_pod_labels_and_build_container(self):
        doc = render(load_template(), _values()).to_json()
        pod_spec = doc["spec"]["template"]
        assert pod_spec["metadata"]["labels"]["sdbuild"] == BUILD_ID
        assert pod_spec["spec"]["restartPolicy"] == "Never"
        assert pod_spec["spec"]["containers"][0]["name"] == "build"

    def test_quote_in_value_is_not_escaped(self):
        with pytest.raises(TemplateParseError):
            render(load_template(), _values(job_name='ma"in'))

    def test_command_from_container(self):
        manifest = render(load_template(), _values())
        assert manifest.command == ["/opt/screwdriver/launch screwdriver-cd hashr master main"]


class TestLoadTemplate:
    def test_custom_path(self, tmp_path, test_template):
        path = tmp_path / "job.yaml.tim"
        path.write_text(test_template)
        assert load_template(path) == test_template

    def test_missing_file(self, tmp_path):
        with pytest.raises(TemplateNotFoundError):
            load_template(tmp_path / "missing.yaml.tim")


class TestBuildTemplateValues:
    def test_values_from_request_and_locator(self):
        request = BuildRequest(
            build_id=BUILD_ID,
            job_id=JOB_ID,
            pipeline_id=PIPELINE_ID,
            job_name=JOB_NAME,
            scm_url=SCM_URL,
        )
        values = build_template_values(request, ScmLocator("screwdriver-cd", "hashr"))
        assert values == _values()
