from enum import Enum


class Role(str, Enum):
    USER = "user"
    EMPLOYER = "employer"
    ADMIN = "admin"
    # Machine callers (scheduled jobs, other backend services)
    SERVICE = "service"
