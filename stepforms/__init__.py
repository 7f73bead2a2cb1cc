"""Multi-step form builder with immutable versions and audited submissions."""
