"""Fractal mathematics: parameters, evaluators, orbit traps and chaos games."""
