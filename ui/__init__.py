"""Dear PyGui front end for the world simulation."""
