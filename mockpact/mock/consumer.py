"""Classes and methods to describe contract Consumers."""
from .pact import Pact
from .provider import Provider


class Consumer(object):
    """
    A Pact consumer.

    Use this class to describe the service making requests to the provider and
    then use `has_pact_with` to create a contract with a specific service:

    >>> from mockpact import Consumer, Provider
    >>> consumer = Consumer('my-web-front-end')
    >>> consumer.has_pact_with(Provider('my-backend-service'))
    """

    def __init__(self, name, service_cls=Pact):
        """
        Constructor for the Consumer class.

        :param name: The name of this Consumer. This will be shown in the Pact
            when it is published.
        :type name: str
        :param service_cls: Pact, or a sub-class of it, to use when creating
            the contracts. This is useful when you have a custom host or pact
            directory and want to use the same value on all of your contracts.
        :type service_cls: mockpact.Pact
        """
        self.name = name
        self.service_cls = service_cls

    def __repr__(self):
        return f'<Consumer {self.name!r}>'

    def has_pact_with(self, provider, host_name='localhost', port=0, log_dir=None,
                      pact_dir=None, version='2.0.0', file_write_mode='overwrite'):
        """
        Create a contract between the `provider` and this consumer.

        The mock provider listens on a free port unless one is given here:

        >>> from mockpact import Consumer, Provider
        >>> consumer = Consumer('my-web-front-end')
        >>> consumer.has_pact_with(
        ...   Provider('my-backend-service'),
        ...   host_name='127.0.0.1',
        ...   port=8000)

        :param provider: The provider service for this contract.
        :type provider: mockpact.Provider
        :param host_name: An optional host name to use when contacting the
            mock provider. This will need to be the same host name used by
            your code under test to contact the mock. It defaults to:
            `localhost`.
        :type host_name: str
        :param port: The TCP port the mock provider listens on. Your code
            under test should take it from `Pact.uri` once the mock has
            started. It defaults to 0, meaning any free port.
        :type port: int
        :param log_dir: The directory where the mock provider's access log
            should be written. Defaults to no log file.
        :type log_dir: str
        :param pact_dir: Directory where the resulting pact files will be
            written. Defaults to the current directory.
        :type pact_dir: str
        :param version: The Pact Specification version to use, defaults to
            '2.0.0'.
        :type version: str
        :param file_write_mode: How to write the pact file: `overwrite`
            (the default), `merge` or `never`.
        :type file_write_mode: str
        :return: A Pact object which you can use to define the specific
            interactions your code will have with the provider.
        :rtype: mockpact.Pact
        """
        if not isinstance(provider, (Provider,)):
            raise ValueError(
                'provider must be an instance of the Provider class.')

        return self.service_cls(
            consumer=self,
            provider=provider,
            host_name=host_name,
            port=port,
            log_dir=log_dir,
            pact_dir=pact_dir,
            version=version,
            file_write_mode=file_write_mode,
        )
