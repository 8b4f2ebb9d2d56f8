"""
Gradio frontend for the face capture demo.
"""
