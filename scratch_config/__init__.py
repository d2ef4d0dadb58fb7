"""
SCRATCHMATH — Configuration

    scratch_config.schema    pydantic data model (configs, outcomes, RGS schema)
    scratch_config.settings  environment-backed tooling settings and logging
"""
