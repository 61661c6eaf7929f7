"""Deal comment threads over a hosted record store."""
