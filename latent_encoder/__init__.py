"""Attribute-conditioned encoder that regresses generator latent codes from images."""
