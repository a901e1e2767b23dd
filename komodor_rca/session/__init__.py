"""RCA session trigger and poll loop."""
