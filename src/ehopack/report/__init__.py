"""
EHO Pack Report

Turns gathered, normalized site data into the inspection document.

Key components:
- primitives: stat grid, data table and callout building blocks
- sections: the sixteen section builders
- assembler: fixed skeleton with per-section failure isolation
- pipeline: compile_report, the single entry point
"""
