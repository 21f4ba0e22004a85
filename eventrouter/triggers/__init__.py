"""Trigger modules: each registers the filter builder of one AWS trigger type."""

from eventrouter.triggers import cloudwatch, codeartifact, codebuild, ecr

__all__ = ["cloudwatch", "codeartifact", "codebuild", "ecr"]
