import importlib

import pytest


@pytest.mark.parametrize(
    "module_name",
    [
        "design_assistant.catalogs",
        "design_assistant.catalogs.base",
        "design_assistant.catalogs.docs",
        "design_assistant.catalogs.figma_api",
        "design_assistant.catalogs.storybook",
        "design_assistant.catalogs.visual",
        "design_assistant.completion",
        "design_assistant.errors",
        "design_assistant.intent",
        "design_assistant.orchestrator",
        "design_assistant.ranking",
        "design_assistant.rendering",
        "design_assistant.scoring",
        "design_assistant.search",
        "design_assistant.tools",
        "design_assistant.ttl_cache",
    ],
)
def test_module_docstring_is_exposed(module_name):
    assert importlib.import_module(module_name).__doc__
