"""Unit calculator plugin."""

manifest = {
    "title": "Unit Calculator",
    "summary": (
        "Evaluate expressions that mix numbers and physical units, with "
        "variables, user functions, custom units and real or complex scalars."
    ),
    "blueprint": "unit_calculator",
    "category": "General Utilities",
}


__all__ = ["manifest"]
