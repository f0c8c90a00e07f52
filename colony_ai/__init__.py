"""
colony-ai: adaptive decision-making for computer-controlled colonies.

Each AI colony observes the human players around it, classifies how they
play, and counters them while it gathers, grows, scouts and fights.
"""

__version__ = "0.1.0"
