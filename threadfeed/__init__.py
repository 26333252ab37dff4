"""Threaded comments and live feed synchronisation for a social feed backend."""
