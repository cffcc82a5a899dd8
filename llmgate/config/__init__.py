"""
Settings for llmgate: pydantic schema plus a YAML / environment loader.
"""
