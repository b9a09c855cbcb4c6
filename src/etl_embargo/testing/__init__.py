from ._helpers import ExampleMember, make_example_archive, read_example_archive

__all__ = [
    "ExampleMember",
    "make_example_archive",
    "read_example_archive",
]
