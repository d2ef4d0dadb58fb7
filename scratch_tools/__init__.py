"""
SCRATCHMATH — Authoring & Validation Tools

    scratch_tools.config_loader  JSON config loading and authoring warnings
    scratch_tools.montecarlo     Monte Carlo RTP validation
    scratch_tools.cli            `scratch-math` command line
"""
