"""Pytest configuration for postkit tests."""

import sys
from pathlib import Path

import pytest

# Add repository root to path for imports
repo_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(repo_root))

from postkit.config import AppConfig, PipelineConfig  # noqa: E402
from postkit.pipeline.pipeline import RenderPipeline  # noqa: E402

HELLO_SOURCE = """---
layout: post
title:  "Hello!"
date:   2017-05-21 10:18:00 +0700
categories: Rails
---
{% highlight ruby %}
class A
end
{% endhighlight %}
"""


def make_source(title="Post", date="2017-05-21 10:18:00", categories=None, body="Body text.\n", **extra):
    """Build a raw post source with simple front matter."""
    lines = ["---", f'title: "{title}"', f"date: {date}"]
    if categories is not None:
        lines.append("categories:")
        lines.extend(f"  - {label}" for label in categories)
    for key, value in extra.items():
        lines.append(f"{key}: {value}")
    lines.append("---")
    return "\n".join(lines) + "\n" + body


@pytest.fixture
def hello_source():
    """The canonical Rails post with a ruby highlight block."""
    return HELLO_SOURCE


@pytest.fixture
def config():
    """Default configuration without progress bars."""
    return AppConfig(pipeline=PipelineConfig(workers=2, show_progress=False))


@pytest.fixture
def pipeline(config):
    """Render pipeline over an empty corpus."""
    return RenderPipeline(config=config)


@pytest.fixture
def posts_dir(tmp_path):
    """Directory with two valid posts."""
    root = tmp_path / "_posts"
    (root / "rails").mkdir(parents=True)
    (root / "2017-05-21-hello.md").write_text(HELLO_SOURCE, encoding="utf-8")
    (root / "rails" / "2017-06-01-second.md").write_text(
        make_source("Second Post", "2017-06-01 09:00:00", ["Rails", "Web"]),
        encoding="utf-8",
    )
    (root / "notes.txt").write_text("not a post", encoding="utf-8")
    return root
