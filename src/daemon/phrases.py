"""Dr. Bob loading phrases shown while a step is running.

Format: "Bob is [a/an] {noun}, he is {verb+ing} …". A new phrase is
chosen on every step.started event.
"""

import random

STATUS_PHRASES: tuple[str, ...] = (
    "Bob is a handyman, he is troubleshooting …",
    "Bob is a surgeon, he is operating …",
    "Bob is a detective, he is investigating …",
    "Bob is a chef, he is cooking …",
    "Bob is a mountaineer, he is climbing …",
    "Bob is a cartographer, he is mapping …",
    "Bob is a diver, he is diving …",
    "Bob is an archaeologist, he is excavating …",
    "Bob is a lighthouse keeper, he is scanning …",
    "Bob is a jazz musician, he is improvising …",
    "Bob is a beekeeper, he is managing …",
    "Bob is a submarine captain, he is navigating …",
    "Bob is a geologist, he is analyzing …",
    "Bob is a chess grandmaster, he is calculating …",
    "Bob is a locksmith, he is unlocking …",
    "Bob is a watchmaker, he is assembling …",
    "Bob is an astronomer, he is observing …",
)


def next_status_phrase() -> str:
    return random.choice(STATUS_PHRASES)
