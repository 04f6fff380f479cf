"""
Custom error types for the Chefify API.
"""

from enum import Enum


class ErrorType(Enum):
    """
    The type of an error, consisting of an error code and a brief string describing the type.
    :ivar error_code: an integer error code.
    :ivar error_type: a brief string describing the error type.
    """

    AUTHENTICATION_FAILED = (10000, "Authentication failed")
    """ A general authentication error. """

    NO_TOKEN = (10010, "No authentication token")
    """ No token was provided when required. """

    INVALID_TOKEN = (10020, "Invalid token")
    """ The token provided is not valid. """

    INVALID_AUTH_HEADER = (10030, "Invalid authentication header")
    """ The authentication header is not valid. """

    MISSING_ROLE = (10040, "Missing required role")
    """ The user is missing a required role. """

    OIDC_PROVIDER_ERROR = (10050, "OIDC provider error")
    """ The OpenID Connect provider could not be used. """

    # ----- User specific error types -----
    USER_ERROR = (20000, "User error")
    """ A general error related to users. """

    USER_NOT_FOUND = (20010, "User not found")
    """ The requested user does not exist. """

    ILLEGAL_PARAMETER = (30001, "Illegal input parameter")
    """ An input parameter had an illegal value. """

    REQUEST_VALIDATION_FAILED = (30010, "Request validation failed")
    """ A request to a service failed validation of the request. """

    def __init__(self, error_code, error_type):
        self.error_code = error_code
        self.error_type = error_type
