"""HTTP surface of the failed payments monitor."""
