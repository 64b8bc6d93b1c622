"""
Integration tests for the inbound email relay.

These tests use mocked AWS services to run complete flows from the
SES notification through forwarding, notification and reply.
"""
