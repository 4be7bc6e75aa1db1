"""
Upload pipeline: token → storage endpoint → slot → archive → blob → metadata.
"""
