"""Monte Carlo aggregation and the simulation controller."""
