"""
EqSolver — Solver defaults.

Used whenever a caller does not pass a tolerance, an iteration budget or a
starting guess explicitly.
"""

# ── Default settings ────────────────────────────────────────────────────
DEFAULT_SETTINGS = {
    "tolerance": 1e-6,          # |residual| below this counts as a root
    "max_iterations": 50,
    "derivative_step": 1e-4,    # finite-difference step h
    "default_guess": 1.0,       # starting value for unknowns without a guess
}


def get_settings(**overrides) -> dict:
    """Return a copy of the defaults with *overrides* applied.

    ``None`` values are ignored so optional call arguments can be passed
    straight through. Unknown keys raise ``KeyError``.
    """
    settings = dict(DEFAULT_SETTINGS)
    for key, value in overrides.items():
        if key not in DEFAULT_SETTINGS:
            raise KeyError(f"Unknown setting: '{key}'")
        if value is not None:
            settings[key] = value
    return settings
