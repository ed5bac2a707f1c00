"""
Built-in stage steps.

Real deployments plug in AI generation, headless page rendering and video
encoding here. The built-in steps are deterministic stand-ins that derive
each stage's output from the previous stage's artifact, so a job can run end
to end without external services.
"""

import asyncio
import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional
from uuid import uuid4

from coursegen.errors import StepExecutionError
from coursegen.factory.artifact_store import ArtifactStore
from coursegen.factory.theme import ThemeConfigResolver
from coursegen.models import Job, Stage, StepOutput

WORDS_PER_SECOND = 2.5
MIN_SCENE_SECONDS = 5


class LocalBlobStorage:
    """Writes large payloads to disk and hands back a URL for them."""

    def __init__(self, root: Path | str, base_url: Optional[str] = None):
        self.root = Path(root)
        self.base_url = base_url.rstrip("/") if base_url else None

    def url_for(self, key: str) -> str:
        if self.base_url:
            return f"{self.base_url}/{key}"
        return (self.root / key).resolve().as_uri()

    async def put_json(self, key: str, data: Any) -> str:
        """Store data under key and return its URL."""
        path = self.root / key

        def write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(data, indent=2))

        await asyncio.to_thread(write)
        return self.url_for(key)


@dataclass
class StepContext:
    """Collaborators available to every stage step."""

    store: ArtifactStore
    resolver: ThemeConfigResolver
    blobs: LocalBlobStorage


StageStep = Callable[[Job, StepContext], Awaitable[StepOutput]]


def _previous_content(job: Job, context: StepContext, stage: Stage) -> dict[str, Any]:
    artifact = context.store.get_latest(job.id, stage)
    if artifact is None or artifact.content is None:
        raise StepExecutionError(f"{stage.value} output is missing for job {job.id}")
    return artifact.content


def parse_markdown_sections(markdown: str) -> tuple[str, list[dict[str, str]]]:
    """Split markdown into a title and (heading, body) sections."""
    title = None
    sections: list[dict[str, str]] = []
    current: Optional[dict[str, Any]] = None

    for line in markdown.splitlines():
        heading = re.match(r"^(#{1,6})\s+(.*)$", line.strip())
        if heading:
            level, text = len(heading.group(1)), heading.group(2).strip()
            if level == 1 and title is None:
                title = text
                continue
            current = {"title": text, "lines": []}
            sections.append(current)
        elif line.strip():
            if current is None:
                current = {"title": title or "Introduction", "lines": []}
                sections.append(current)
            current["lines"].append(line.strip())

    parsed = [
        {"title": s["title"], "narration": " ".join(s["lines"]) or s["title"]}
        for s in sections
    ]
    if not parsed:
        parsed = [{"title": title or "Introduction", "narration": title or markdown.strip()}]
    return title or parsed[0]["title"], parsed


async def script_step(job: Job, context: StepContext) -> StepOutput:
    """Turn the source document into a narration script."""
    title, sections = parse_markdown_sections(job.source_content)
    return StepOutput.json({
        "title": title,
        "language": job.language or "en",
        "sections": sections,
    })


async def storyboard_step(job: Job, context: StepContext) -> StepOutput:
    """Lay the script out as timed scenes."""
    script = _previous_content(job, context, Stage.SCRIPT)
    scenes = []
    for i, section in enumerate(script.get("sections", []), start=1):
        words = len(section["narration"].split())
        scenes.append({
            "scene_id": f"scene_{i:02d}",
            "title": section["title"],
            "narration": section["narration"],
            "duration_seconds": max(MIN_SCENE_SECONDS, round(words / WORDS_PER_SECOND)),
        })
    return StepOutput.json({
        "title": script.get("title"),
        "scenes": scenes,
        "total_duration_seconds": sum(s["duration_seconds"] for s in scenes),
    })


async def pages_step(job: Job, context: StepContext) -> StepOutput:
    """Assign a themed slide page to every scene."""
    storyboard = _previous_content(job, context, Stage.STORYBOARD)
    theme = context.resolver.resolve(job.style)
    layouts = theme.layouts.supported_layouts or [theme.layouts.default_layout]

    pages = []
    for i, scene in enumerate(storyboard.get("scenes", [])):
        layout = "title" if i == 0 and "title" in layouts else layouts[i % len(layouts)]
        pages.append({
            "page": i + 1,
            "scene_id": scene["scene_id"],
            "title": scene["title"],
            "layout": layout,
            "duration_seconds": scene["duration_seconds"],
        })

    content = {
        "title": storyboard.get("title"),
        "theme": theme.model_dump(mode="json"),
        "pages": pages,
    }
    blob_url = await context.blobs.put_json(f"jobs/{job.id}/pages/{uuid4().hex[:8]}.json", content)
    return StepOutput.json(content, blob_url=blob_url)


async def merge_step(job: Job, context: StepContext) -> StepOutput:
    """Assemble the pages into the video timeline handed to the encoder."""
    pages = _previous_content(job, context, Stage.PAGES)
    timeline = []
    offset = 0
    for page in pages.get("pages", []):
        timeline.append({
            "page": page["page"],
            "start_seconds": offset,
            "duration_seconds": page["duration_seconds"],
        })
        offset += page["duration_seconds"]

    manifest = {"title": pages.get("title"), "timeline": timeline, "duration_seconds": offset}
    blob_url = await context.blobs.put_json(f"jobs/{job.id}/video/{uuid4().hex[:8]}.json", manifest)
    return StepOutput.video(blob_url, content={
        "title": pages.get("title"),
        "duration_seconds": offset,
        "page_count": len(timeline),
    })


def default_steps() -> dict[Stage, StageStep]:
    """The built-in step for every stage."""
    return {
        Stage.SCRIPT: script_step,
        Stage.STORYBOARD: storyboard_step,
        Stage.PAGES: pages_step,
        Stage.MERGE: merge_step,
    }
