"""Tests for discosync.dispatcher -- selection modes and per-API failure handling."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from discosync.catalog import EffectiveCatalog, apply_policy
from discosync.dispatcher import GenerationDispatcher, parse_document
from discosync.exceptions import FileWriteError, RenderError
from discosync.fetcher import DocumentFetcher
from discosync.models import ApiDescriptor, PolicyConfig

MIRROR = "https://mirror.example.com/{name}.{version}.json"


def _doc(name: str, version: str) -> dict[str, Any]:
    return {"name": name, "version": version}


def _fake_render(document: dict[str, Any]) -> dict[str, str]:
    return {f"{document['name']}_{document['version']}.py": "# generated\n"}


def _catalog(*entries: dict[str, Any], policy: PolicyConfig | None = None) -> EffectiveCatalog:
    descriptors = [ApiDescriptor.model_validate(e) for e in entries]
    return apply_policy(descriptors, policy or PolicyConfig())


@pytest.fixture
def render() -> MagicMock:
    return MagicMock(side_effect=_fake_render)


@pytest.fixture
def dispatch(fake_discovery, render, tmp_path):
    """Yield a dispatcher wired to the fake discovery server and *tmp_path*."""
    with DocumentFetcher(transport=fake_discovery.transport()) as fetcher:
        yield GenerationDispatcher(fetcher, render, tmp_path, mirror_url=MIRROR)


# ---------------------------------------------------------------------------
# Candidate URLs
# ---------------------------------------------------------------------------


class TestCandidateUrls:
    def test_mirror_first_then_rest_url(self, dispatch) -> None:
        descriptor = ApiDescriptor(
            name="a", version="v1", discoveryRestUrl="https://a.example.com/rest"
        )
        assert dispatch.candidate_urls(descriptor) == [
            "https://mirror.example.com/a.v1.json",
            "https://a.example.com/rest",
        ]

    def test_no_rest_url(self, dispatch) -> None:
        descriptor = ApiDescriptor(name="a", version="v1")
        assert dispatch.candidate_urls(descriptor) == ["https://mirror.example.com/a.v1.json"]

    def test_rest_url_equal_to_mirror_is_not_repeated(self, dispatch) -> None:
        descriptor = ApiDescriptor(
            name="a", version="v1", discoveryRestUrl="https://mirror.example.com/a.v1.json"
        )
        assert len(dispatch.candidate_urls(descriptor)) == 1


# ---------------------------------------------------------------------------
# Documents and URL lists
# ---------------------------------------------------------------------------


class TestDocuments:
    def test_each_document_counts_once(self, dispatch, render, tmp_path) -> None:
        count = dispatch.generate_from_documents([_doc("a", "v1"), '{"name": "b", "version": "v2"}'])
        assert count == 2
        assert render.call_count == 2
        assert (tmp_path / "a_v1.py").read_text() == "# generated\n"
        assert (tmp_path / "b_v2.py").exists()

    def test_yaml_string_document(self, dispatch, render) -> None:
        assert dispatch.generate_from_documents(["name: c\nversion: v3\n"]) == 1
        render.assert_called_once_with({"name": "c", "version": "v3"})

    def test_unparseable_string_raises(self, dispatch) -> None:
        with pytest.raises(RenderError):
            dispatch.generate_from_documents(["[1, 2"])

    def test_empty_input(self, dispatch, render) -> None:
        assert dispatch.generate_from_documents([]) == 0
        render.assert_not_called()


class TestUrlModes:
    def test_first_success_stops_after_success(self, dispatch, fake_discovery, render) -> None:
        fake_discovery.routes["https://one.example.com/a"] = 500
        fake_discovery.routes["https://two.example.com/a"] = _doc("a", "v1")
        fake_discovery.routes["https://three.example.com/a"] = _doc("a", "v1")

        count = dispatch.generate_first_success(
            ["https://one.example.com/a", "https://two.example.com/a", "https://three.example.com/a"]
        )
        assert count == 1
        assert render.call_count == 1
        assert "https://three.example.com/a" not in fake_discovery.requested

    def test_first_success_all_fail(self, dispatch, fake_discovery, render, plain_output, capsys) -> None:
        fake_discovery.routes["https://one.example.com/a"] = httpx.ConnectError("refused")
        count = dispatch.generate_first_success(
            ["https://one.example.com/a", "https://two.example.com/a"], label="a.v1"
        )
        assert count == 0
        render.assert_not_called()
        err = capsys.readouterr().err
        assert "Failed request, skipping https://one.example.com/a" in err
        assert "Failed request, skipping https://two.example.com/a" in err
        assert "No candidate URL could be retrieved for a.v1" in err

    def test_each_counts_every_success(self, dispatch, fake_discovery, render) -> None:
        fake_discovery.routes["https://x.example.com/a"] = _doc("a", "v1")
        fake_discovery.routes["https://x.example.com/b"] = _doc("b", "v1")
        count = dispatch.generate_each(
            ["https://x.example.com/a", "https://x.example.com/missing", "https://x.example.com/b"]
        )
        assert count == 2
        assert fake_discovery.requested == [
            "https://x.example.com/a",
            "https://x.example.com/missing",
            "https://x.example.com/b",
        ]

    def test_non_object_body_is_skipped(self, dispatch, fake_discovery, render) -> None:
        fake_discovery.routes["https://x.example.com/list"] = [1, 2, 3]
        assert dispatch.generate_each(["https://x.example.com/list"]) == 0
        render.assert_not_called()


# ---------------------------------------------------------------------------
# Catalog modes
# ---------------------------------------------------------------------------


class TestGenerateNamed:
    def test_named_api_uses_mirror(self, dispatch, fake_discovery, render, tmp_path) -> None:
        fake_discovery.routes["https://mirror.example.com/a.v1.json"] = _doc("a", "v1")
        catalog = _catalog({"name": "a", "version": "v1"})
        assert dispatch.generate_named(["a.v1"], catalog, PolicyConfig()) == 1
        assert (tmp_path / "a_v1.py").exists()

    def test_falls_back_to_rest_url(self, dispatch, fake_discovery, render) -> None:
        fake_discovery.routes["https://a.example.com/rest"] = _doc("a", "v1")
        catalog = _catalog(
            {"name": "a", "version": "v1", "discoveryRestUrl": "https://a.example.com/rest"}
        )
        assert dispatch.generate_named(["a.v1"], catalog, PolicyConfig()) == 1
        assert fake_discovery.requested == [
            "https://mirror.example.com/a.v1.json",
            "https://a.example.com/rest",
        ]

    def test_paused_api_is_never_fetched(self, dispatch, fake_discovery, render, plain_output, capsys) -> None:
        policy = PolicyConfig.model_validate({"pause": ["a.v1"]})
        catalog = _catalog({"name": "a", "version": "v1"}, policy=policy)
        assert dispatch.generate_named(["a.v1"], catalog, policy) == 0
        assert fake_discovery.requested == []
        render.assert_not_called()
        assert "Ignoring paused API a.v1" in capsys.readouterr().err

    def test_unknown_api_is_reported(self, dispatch, fake_discovery, render, plain_output, capsys) -> None:
        catalog = _catalog({"name": "a", "version": "v1"})
        assert dispatch.generate_named(["zzz.v9", "noversion"], catalog, PolicyConfig()) == 0
        assert fake_discovery.requested == []
        err = capsys.readouterr().err
        assert "API zzz.v9 is not in the discovery list" in err
        assert "API noversion is not in the discovery list" in err

    def test_excluded_api_is_not_in_catalog(self, dispatch, fake_discovery) -> None:
        policy = PolicyConfig.model_validate({"exclude": ["a.v1"]})
        catalog = _catalog({"name": "a", "version": "v1"}, policy=policy)
        assert dispatch.generate_named(["a.v1"], catalog, policy) == 0
        assert fake_discovery.requested == []


class TestGenerateAll:
    def test_skips_paused_and_counts_rest(self, dispatch, fake_discovery, render, plain_output, capsys) -> None:
        for name in ("a", "b", "c"):
            fake_discovery.routes[f"https://mirror.example.com/{name}.v1.json"] = _doc(name, "v1")
        policy = PolicyConfig.model_validate({"pause": ["b.v1"]})
        catalog = _catalog(
            {"name": "a", "version": "v1"},
            {"name": "b", "version": "v1"},
            {"name": "c", "version": "v1"},
            policy=policy,
        )
        assert dispatch.generate_all(catalog, policy) == 2
        assert "https://mirror.example.com/b.v1.json" not in fake_discovery.requested
        err = capsys.readouterr().err
        assert "Ignoring paused API b.v1" in err
        assert "Loading a, version v1 from https://mirror.example.com/a.v1.json" in err

    def test_preferred_only(self, dispatch, fake_discovery, render, plain_output, capsys) -> None:
        for version in ("v1", "v2", "v3"):
            fake_discovery.routes[f"https://mirror.example.com/a.{version}.json"] = _doc("a", version)
        catalog = _catalog(
            {"name": "a", "version": "v1", "preferred": False},
            {"name": "a", "version": "v2", "preferred": True},
            {"name": "a", "version": "v3", "preferred": False},
        )
        assert dispatch.generate_all(catalog, PolicyConfig(), preferred_only=True) == 1
        assert fake_discovery.requested == ["https://mirror.example.com/a.v2.json"]
        assert render.call_count == 1
        err = capsys.readouterr().err
        assert "Ignoring non-preferred API a.v1" in err
        assert "Ignoring non-preferred API a.v3" in err

    def test_failed_api_does_not_abort_the_sweep(self, dispatch, fake_discovery, render, plain_output, capsys) -> None:
        fake_discovery.routes["https://mirror.example.com/a.v1.json"] = 404
        fake_discovery.routes["https://mirror.example.com/b.v1.json"] = _doc("b", "v1")
        catalog = _catalog({"name": "a", "version": "v1"}, {"name": "b", "version": "v1"})
        assert dispatch.generate_all(catalog, PolicyConfig()) == 1
        assert "Failed request, skipping https://mirror.example.com/a.v1.json" in capsys.readouterr().err

    def test_malformed_rest_url_does_not_abort_the_sweep(self, dispatch, fake_discovery, render) -> None:
        fake_discovery.routes["https://mirror.example.com/a.v1.json"] = 404
        fake_discovery.routes["https://mirror.example.com/b.v1.json"] = _doc("b", "v1")
        catalog = _catalog(
            {"name": "a", "version": "v1", "discoveryRestUrl": "https://bad\x00host/rest"},
            {"name": "b", "version": "v1"},
        )
        assert dispatch.generate_all(catalog, PolicyConfig()) == 1
        render.assert_called_once_with(_doc("b", "v1"))


# ---------------------------------------------------------------------------
# Fatal failures
# ---------------------------------------------------------------------------


class TestFatalFailures:
    def test_render_error_propagates(self, fake_discovery, tmp_path) -> None:
        fake_discovery.routes["https://x.example.com/a"] = _doc("a", "v1")
        fake_discovery.routes["https://x.example.com/b"] = _doc("b", "v1")
        render = MagicMock(side_effect=RenderError("bad document"))
        with DocumentFetcher(transport=fake_discovery.transport()) as fetcher:
            dispatcher = GenerationDispatcher(fetcher, render, tmp_path, mirror_url=MIRROR)
            with pytest.raises(RenderError, match="bad document"):
                dispatcher.generate_each(["https://x.example.com/a", "https://x.example.com/b"])
        assert fake_discovery.requested == ["https://x.example.com/a"]

    def test_write_outside_destination_raises(self, fake_discovery, tmp_path) -> None:
        render = MagicMock(return_value={"../escape.py": "x"})
        with DocumentFetcher(transport=fake_discovery.transport()) as fetcher:
            dispatcher = GenerationDispatcher(fetcher, render, tmp_path / "out", mirror_url=MIRROR)
            with pytest.raises(FileWriteError, match="Refusing to write outside"):
                dispatcher.generate_from_documents([_doc("a", "v1")])
        assert not (tmp_path / "escape.py").exists()


# ---------------------------------------------------------------------------
# parse_document
# ---------------------------------------------------------------------------


class TestParseDocument:
    def test_json(self) -> None:
        assert parse_document('{"name": "a"}') == {"name": "a"}

    def test_yaml(self) -> None:
        assert parse_document("name: a\nversion: v1\n") == {"name": "a", "version": "v1"}

    def test_scalar_rejected(self) -> None:
        with pytest.raises(RenderError, match="must be an object"):
            parse_document("just text")

    def test_invalid(self) -> None:
        with pytest.raises(RenderError, match="Cannot parse"):
            parse_document("key: [unclosed")
