"""TaskBoard: realtime task board client over a hosted backend."""
