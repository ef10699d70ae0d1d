"""SSH utilities for querying a remote Hyper-V host."""

import logging
from typing import Optional

import paramiko

from ..config.models import SSHHostConfig


class SSHHelper:
    """Helper class for SSH operations."""

    @staticmethod
    def create_client(
        config: SSHHostConfig,
        logger: logging.Logger,
        timeout: float = 10
    ) -> paramiko.SSHClient:
        """
        Create SSH client with key or password authentication.

        Args:
            config: Remote host configuration
            logger: Logger instance
            timeout: Connect and banner timeout in seconds

        Returns:
            paramiko.SSHClient: Connected client

        Raises:
            paramiko.AuthenticationException: If authentication fails
            paramiko.SSHException: On SSH protocol errors
            OSError: If the host cannot be reached
        """
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        try:
            logger.debug(f"Connecting to {config.host}:{config.port} as {config.username}")

            client.connect(
                hostname=config.host,
                port=config.port,
                username=config.username,
                key_filename=config.ssh_key_path,
                password=config.password,
                timeout=timeout,
                banner_timeout=timeout
            )

            logger.debug(f"Successfully connected to {config.host}")
            return client

        except paramiko.AuthenticationException as e:
            logger.error(f"Authentication failed for {config.host}: {e}")
            client.close()
            raise

        except paramiko.SSHException as e:
            logger.error(f"SSH error connecting to {config.host}: {e}")
            client.close()
            raise

        except OSError as e:
            logger.error(f"Failed to connect to {config.host}: {e}")
            client.close()
            raise

    @staticmethod
    def exec_command(
        client: paramiko.SSHClient,
        command: str,
        timeout: float = 30,
        logger: Optional[logging.Logger] = None
    ) -> str:
        """
        Execute command on SSH client and return stdout.

        Args:
            client: Connected paramiko.SSHClient
            command: Command to execute
            timeout: Command timeout in seconds
            logger: Optional logger instance

        Returns:
            str: Command stdout

        Raises:
            RuntimeError: If command fails (non-zero exit code)
            TimeoutError: If the command produces no output or exit status
                within timeout (socket.timeout is a TimeoutError alias)
        """
        if logger:
            logger.debug(f"Executing command: {command}")

        stdin, stdout, stderr = client.exec_command(command, timeout=timeout)
        channel = stdout.channel

        # Drain output before waiting for the exit status; a full channel
        # window stalls the remote process. Reads are bounded by the channel timeout.
        stdout_data = stdout.read().decode('utf-8', errors='replace')
        stderr_data = stderr.read().decode('utf-8', errors='replace')

        if not channel.status_event.wait(timeout):
            channel.close()
            raise TimeoutError(f"No exit status within {timeout}s")
        exit_code = channel.recv_exit_status()

        if exit_code != 0:
            error_msg = f"Command failed with exit code {exit_code}: {stderr_data.strip()}"
            if logger:
                logger.error(error_msg)
            raise RuntimeError(error_msg)

        if logger:
            logger.debug(f"Command completed successfully ({len(stdout_data)} bytes)")

        return stdout_data

    @staticmethod
    def close_client(client: paramiko.SSHClient, logger: Optional[logging.Logger] = None) -> None:
        """
        Close SSH client connection.

        Args:
            client: paramiko.SSHClient instance
            logger: Optional logger instance
        """
        try:
            client.close()
            if logger:
                logger.debug("SSH connection closed")
        except Exception as e:
            if logger:
                logger.warning(f"Error closing SSH connection: {e}")
