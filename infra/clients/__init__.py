"""Outbound HTTP clients

- LeetCodeClient: LeetCode statistics proxy
- GfgClient / CodeChefClient: problem-of-the-day and contest list proxies
- TavusClient: live video-chat sessions
- SupabaseAuthClient: hosted auth (GoTrue) REST
"""
from .base import IntegrationError
from .leetcode import LeetCodeClient
from .contests import GfgClient, CodeChefClient
from .tavus import TavusClient
from .supabase_auth import SupabaseAuthClient, AuthServiceError

__all__ = [
    'IntegrationError',
    'LeetCodeClient',
    'GfgClient',
    'CodeChefClient',
    'TavusClient',
    'SupabaseAuthClient',
    'AuthServiceError',
]
