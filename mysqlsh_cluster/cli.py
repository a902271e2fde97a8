#!/usr/bin/env python3
"""
Command line interface for managing an InnoDB cluster through mysqlsh.
"""

import argparse
import dataclasses
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from .cluster_manager import ClusterManager
from .innodb import DEFAULT_CLUSTER_NAME
from .options import Options
from .process import LocalProcessExecutor, RemoteProcessExecutor
from .utils.config import Config
from .utils.logger import setup_logger
from .utils.ssh_client import SSHClient


def parse_option_value(value: str) -> Any:
    """Turn a --option value into bool, int or str."""
    lowered = value.lower()
    if lowered in ('true', 'false'):
        return lowered == 'true'
    try:
        return int(value)
    except ValueError:
        return value


def parse_options(pairs: Optional[List[str]]) -> Options:
    """Build Options from repeated key=value arguments."""
    options = Options()
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise ValueError(f"Invalid option '{pair}', expected key=value")
        options[key] = parse_option_value(value)
    return options


class ClusterCLI:
    """Main CLI interface for the cluster driver."""

    def __init__(self):
        """Initialize CLI."""
        self.logger = None
        self.config = None
        self.ssh = None

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description='Manage a MySQL InnoDB cluster through mysqlsh',
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="""
Examples:
  # Bootstrap a cluster on the first instance
  %(prog)s --uri root:secret@mysql-0:3306 create --option memberSslMode=REQUIRED

  # Add a second instance
  %(prog)s --uri root:secret@mysql-0:3306 add-instance root:secret@mysql-1:3306

  # Show cluster status, running mysqlsh on the database host
  %(prog)s --uri root:secret@localhost --ssh-host db1.example.com status
            """
        )

        parser.add_argument(
            '--config',
            type=Path,
            help='Configuration file path (YAML or JSON)'
        )
        parser.add_argument(
            '--verbose', '-v',
            action='store_true',
            help='Enable verbose output'
        )

        shell_group = parser.add_argument_group('MySQL Shell Options')
        shell_group.add_argument(
            '--uri',
            help='Instance to connect to: [user[:pass]@]host[:port][/db]'
        )
        shell_group.add_argument(
            '--binary',
            help='mysqlsh executable (default: mysqlsh)'
        )
        shell_group.add_argument(
            '--cluster-name',
            help=f'Cluster name (default: {DEFAULT_CLUSTER_NAME})'
        )
        shell_group.add_argument(
            '--timeout',
            type=float,
            help='Abort mysqlsh after this many seconds'
        )

        ssh_group = parser.add_argument_group('SSH Options')
        ssh_group.add_argument(
            '--ssh-host',
            help='Run mysqlsh on this host over SSH'
        )
        ssh_group.add_argument(
            '--ssh-user',
            help='SSH username (default: root)'
        )
        ssh_group.add_argument(
            '--ssh-password',
            help='SSH password'
        )
        ssh_group.add_argument(
            '--ssh-key',
            type=Path,
            help='SSH private key file path'
        )
        ssh_group.add_argument(
            '--ssh-port',
            type=int,
            help='SSH port (default: 22)'
        )

        subparsers = parser.add_subparsers(dest='command', help='Command to execute')

        subparsers.add_parser(
            'is-clustered',
            help='Exit 0 if the instance belongs to the cluster'
        )
        create_parser = subparsers.add_parser(
            'create',
            help='Create the cluster on the connected instance'
        )
        self._add_options_argument(create_parser)
        subparsers.add_parser(
            'status',
            help='Show cluster status'
        )
        check_parser = subparsers.add_parser(
            'check-instance',
            help='Check whether an instance can join the cluster'
        )
        check_parser.add_argument('instance', help='Instance URI')

        for name, help_text in (
            ('add-instance', 'Add an instance to the cluster'),
            ('rejoin-instance', 'Rejoin an instance to the cluster'),
            ('remove-instance', 'Remove an instance from the cluster'),
        ):
            instance_parser = subparsers.add_parser(name, help=help_text)
            instance_parser.add_argument('instance', help='Instance URI')
            self._add_options_argument(instance_parser)

        subparsers.add_parser(
            'reboot',
            help='Reboot the cluster after a complete outage'
        )

        return parser

    @staticmethod
    def _add_options_argument(parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            '--option', '-o',
            action='append',
            metavar='KEY=VALUE',
            help='Option passed to mysqlsh (repeatable)'
        )

    def load_config(self, config_file: Optional[Path], args: argparse.Namespace) -> None:
        """Load configuration from file and environment, then apply command line arguments."""
        self.config = Config.from_env(config_file)

        overrides = {
            'mysqlsh.uri': args.uri,
            'mysqlsh.binary': args.binary,
            'mysqlsh.cluster_name': args.cluster_name,
            'mysqlsh.timeout': args.timeout,
            'ssh.host': args.ssh_host,
            'ssh.user': args.ssh_user,
            'ssh.password': args.ssh_password,
            'ssh.key_file': args.ssh_key,
            'ssh.port': args.ssh_port,
        }
        for key, value in overrides.items():
            if value is not None:
                self.config.set(key, value)

    def setup_logging(self, verbose: bool) -> None:
        """Set up logging."""
        log_file = self.config.get('log_file') if self.config else None
        self.logger = setup_logger(
            'mysqlsh_cluster',
            log_file=Path(log_file) if log_file else None,
            verbose=verbose
        )

    def get_cluster_manager(self) -> ClusterManager:
        uri = self.config.get('mysqlsh.uri')
        if not uri:
            raise ValueError("Instance URI required. Provide --uri, MYSQLSH_URI or use config file.")

        ssh_host = self.config.get('ssh.host')
        if ssh_host:
            key_file = self.config.get('ssh.key_file')
            self.ssh = SSHClient(
                hostname=ssh_host,
                username=self.config.get('ssh.user', 'root'),
                password=self.config.get('ssh.password'),
                key_file=Path(key_file) if key_file else None,
                port=self.config.get('ssh.port', 22)
            )
            executor = RemoteProcessExecutor(self.ssh)
        else:
            executor = LocalProcessExecutor()

        return ClusterManager(
            uri,
            executor=executor,
            cluster_name=self.config.get('mysqlsh.cluster_name', DEFAULT_CLUSTER_NAME),
            binary=self.config.get('mysqlsh.binary', 'mysqlsh'),
            logger=self.logger
        )

    def execute(self, cluster: ClusterManager, args: argparse.Namespace) -> int:
        """Dispatch one subcommand."""
        ctx = {'timeout': self.config.get('mysqlsh.timeout')}

        if args.command == 'is-clustered':
            clustered = cluster.is_clustered(**ctx)
            print('true' if clustered else 'false')
            return 0 if clustered else 1
        elif args.command == 'create':
            self.print_record(cluster.create_cluster(parse_options(args.option), **ctx))
        elif args.command == 'status':
            self.print_record(cluster.get_cluster_status(**ctx))
        elif args.command == 'check-instance':
            self.print_record(cluster.check_instance_state(args.instance, **ctx))
        elif args.command == 'add-instance':
            cluster.add_instance_to_cluster(args.instance, parse_options(args.option), **ctx)
        elif args.command == 'rejoin-instance':
            cluster.rejoin_instance_to_cluster(args.instance, parse_options(args.option), **ctx)
        elif args.command == 'remove-instance':
            cluster.remove_instance_from_cluster(args.instance, parse_options(args.option), **ctx)
        elif args.command == 'reboot':
            cluster.reboot_cluster_from_complete_outage(**ctx)
        else:
            self.logger.error(f"Unknown command: {args.command}")
            return 1
        return 0

    @staticmethod
    def print_record(record) -> None:
        data = record.raw if record.raw else dataclasses.asdict(record)
        print(json.dumps(data, indent=2, sort_keys=True))

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Main entry point."""
        parser = self.build_parser()
        args = parser.parse_args(argv)

        if not args.command:
            parser.print_help()
            return 1

        try:
            self.load_config(args.config, args)
            self.setup_logging(args.verbose)
            cluster = self.get_cluster_manager()
            return self.execute(cluster, args)
        except KeyboardInterrupt:
            if self.logger:
                self.logger.info("Interrupted by user")
            return 130
        except Exception as e:
            if self.logger:
                self.logger.error(f"Error: {e}", exc_info=args.verbose)
            else:
                print(f"Error: {e}", file=sys.stderr)
            return 1
        finally:
            if self.ssh:
                self.ssh.disconnect()


def main():
    """Entry point for command line execution."""
    cli = ClusterCLI()
    sys.exit(cli.run())


if __name__ == '__main__':
    main()
