"""Utility modules for HTTP Builder."""

from .marshal import (
    json_marshal,
    json_unmarshal,
    xml_marshal,
    xml_unmarshal,
    xml_to_dict,
    is_record,
    record_to_dict,
)
from .sanitizer import mask_sensitive_data, mask_headers, mask_url
from .user_agents import random_user_agent, DEFAULT_USER_AGENT

__all__ = [
    'json_marshal',
    'json_unmarshal',
    'xml_marshal',
    'xml_unmarshal',
    'xml_to_dict',
    'is_record',
    'record_to_dict',
    'mask_sensitive_data',
    'mask_headers',
    'mask_url',
    'random_user_agent',
    'DEFAULT_USER_AGENT',
]
