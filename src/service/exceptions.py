"""
Custom exceptions for the Chefify API.
"""


class ChefifyError(Exception):
    """
    The super class of all Chefify related errors.
    """


class ConfigurationError(ChefifyError):
    """
    An error thrown when the application configuration is missing or invalid.
    """


class IllegalParameterError(ChefifyError):
    """
    An error thrown when a provided parameter is illegal.
    """


class AuthenticationError(ChefifyError):
    """
    Super class for authentication related errors.
    """


class MissingTokenError(AuthenticationError):
    """
    An error thrown when a token is required but absent.
    """


class InvalidAuthHeaderError(AuthenticationError):
    """
    An error thrown when an authorization header is invalid.
    """


class InvalidTokenError(AuthenticationError):
    """
    An error thrown when a user's token is invalid.
    """


class MissingRoleError(AuthenticationError):
    """
    An error thrown when a user is missing a required role.
    """


class OIDCProviderError(ChefifyError):
    """
    An error thrown when the OpenID Connect provider cannot be reached or returns
    an unusable response.
    """


class ServiceResolutionError(ChefifyError):
    """
    Base class for dependency injection container errors.
    """


class ServiceNotRegisteredError(ServiceResolutionError):
    """
    An error thrown when a required service has no registration.
    """


class InvalidScopeError(ServiceResolutionError):
    """
    An error thrown when a scoped service is resolved outside of a scope.
    """


class ServiceProviderClosedError(ServiceResolutionError):
    """
    An error thrown when a service provider or scope is used after it was closed.
    """


class UserError(ChefifyError):
    """
    Base class for user related errors.
    """


class UserNotFoundError(UserError):
    """
    An error thrown when a user does not exist.
    """
