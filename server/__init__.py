"""HTTP surface for the LifeLog engine."""
