"""
Fixed task categories and field limits shared by the server and the client.
"""
from enum import StrEnum


class Category(StrEnum):
    TODO = "To-Do"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


# Board column order, left to right
CATEGORIES: tuple[Category, ...] = (Category.TODO, Category.IN_PROGRESS, Category.DONE)

TITLE_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 200
