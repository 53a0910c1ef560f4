"""
Application Layer

Use-case orchestration on top of the domain:
- interfaces/: Ports for the audio engine and media files
- services/: Session controller, download monitor, and bookmark service
"""
