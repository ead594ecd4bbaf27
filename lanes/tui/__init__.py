"""Interactive board: mode controller, sessions, rendering and the application shell."""
