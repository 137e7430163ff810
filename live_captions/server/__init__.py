"""HTTP host service: credential check, SDP exchange proxy, caption sessions."""
