"""GigTrust: fraud and trust engine for a freelance marketplace backend."""
