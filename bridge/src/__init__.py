"""
Bridge daemon package for BL-NET-to-home-automation forwarding.

Polls a Technische Alternative BL-NET data logger over its binary TCP
protocol, decodes the latest sensor snapshot, and forwards calibrated
readings to a home-automation controller over UDP.

CHANGELOG:
- 2026-09-14: Initial creation (STORY-001)

TODO:
- None
"""
