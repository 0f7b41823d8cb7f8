"""
Moderation core: detection, enforcement, auditing and the pipeline that
ties them together. Nothing in here talks to py-cord directly except the
administrator notification path of the action executor.
"""
