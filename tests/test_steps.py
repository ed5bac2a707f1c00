"""Tests for the built-in stage steps."""

import json
from pathlib import Path

import pytest

from coursegen.factory.steps import (
    LocalBlobStorage,
    StepContext,
    merge_step,
    pages_step,
    parse_markdown_sections,
    script_step,
    storyboard_step,
)
from coursegen.factory.theme import ThemeConfigResolver
from coursegen.models import ArtifactType, Job, Stage


class TestParseMarkdown:
    def test_title_and_sections(self, sample_markdown):
        title, sections = parse_markdown_sections(sample_markdown)

        assert title == "How Caches Work"
        assert [s["title"] for s in sections] == ["Why caching matters", "Cache lines"]
        assert sections[1]["narration"].startswith("Data moves")

    def test_title_only(self):
        title, sections = parse_markdown_sections("# Title")

        assert title == "Title"
        assert sections == [{"title": "Title", "narration": "Title"}]

    def test_text_before_first_heading(self):
        title, sections = parse_markdown_sections("Plain intro text.\n\n## Details\n\nMore.")

        assert title == "Introduction"
        assert sections[0] == {"title": "Introduction", "narration": "Plain intro text."}


class TestSteps:
    @pytest.mark.asyncio
    async def test_chain_produces_a_video_manifest(self, tmp_path, store, sample_markdown):
        context = StepContext(store, ThemeConfigResolver(), LocalBlobStorage(tmp_path / "blobs"))
        job = Job(id="job_steps", source_content=sample_markdown, style="tech")

        for stage, step in [
            (Stage.SCRIPT, script_step),
            (Stage.STORYBOARD, storyboard_step),
            (Stage.PAGES, pages_step),
            (Stage.MERGE, merge_step),
        ]:
            output = await step(job, context)
            store.create(job.id, stage, output.type, content=output.content, blob_url=output.blob_url)

        storyboard = store.get_latest(job.id, Stage.STORYBOARD).content
        assert [s["scene_id"] for s in storyboard["scenes"]] == ["scene_01", "scene_02"]
        assert all(s["duration_seconds"] >= 5 for s in storyboard["scenes"])

        pages = store.get_latest(job.id, Stage.PAGES)
        assert pages.content["theme"]["theme"]["name"] == "tech"
        assert pages.content["pages"][0]["layout"] == "title"

        video = store.get_latest(job.id, Stage.MERGE)
        assert video.type == ArtifactType.VIDEO
        assert video.content["duration_seconds"] == storyboard["total_duration_seconds"]
        manifest = json.loads(Path(video.blob_url.removeprefix("file://")).read_text())
        assert len(manifest["timeline"]) == 2

    @pytest.mark.asyncio
    async def test_blob_storage_base_url(self, tmp_path):
        blobs = LocalBlobStorage(tmp_path, base_url="https://cdn.example.com/")

        url = await blobs.put_json("jobs/a/b.json", {"ok": True})

        assert url == "https://cdn.example.com/jobs/a/b.json"
        assert json.loads((tmp_path / "jobs/a/b.json").read_text()) == {"ok": True}
