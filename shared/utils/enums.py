from enum import Enum


class UserAccountType(str, Enum):
    ADMIN = "admin"
    TENANT = "tenant"
