"""Account profile and password reset."""
