"""Change feed shared by running boards: wire protocol, client and broker."""
