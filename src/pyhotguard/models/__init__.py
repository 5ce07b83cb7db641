"""Typed models for policy documents."""

from pyhotguard.models.policy import PolicyDocument
from pyhotguard.models.remote import RemotePolicyDocument

__all__ = [
    "PolicyDocument",
    "RemotePolicyDocument",
]
