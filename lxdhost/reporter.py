"""Console reporting for provisioning runs."""
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from lxdhost.core.config import ProvisionConfig
from lxdhost.models.results import ProvisionReport, StepResult

RULE = "-" * 69


class Reporter:
    """Prints step outcomes and the manual follow-up summary."""

    def __init__(self, console: Console, config: ProvisionConfig):
        self.console = console
        self.config = config

    def info(self, message: str) -> None:
        self.console.print(f"[bold blue]\\[INFO][/bold blue] {escape(message)}")

    def warning(self, message: str) -> None:
        self.console.print(f"[bold yellow]\\[WARNING][/bold yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[bold red]\\[ERROR][/bold red] {escape(message)}")

    def banner(self) -> None:
        self.info("Starting LXD host, container, and CloudPanel provisioning...")
        self.console.print(RULE)

    def step(self, result: StepResult) -> None:
        if not result.ok:
            self.error(f"\"{result.name}\" failed: {result.detail}")
        elif result.changed:
            self.info(f"\"{result.name}\" completed successfully.")
        else:
            detail = f" ({result.detail})" if result.detail else ""
            self.info(f"\"{result.name}\" already satisfied{detail}.")

    def steps_table(self, report: ProvisionReport) -> Table:
        table = Table(title="Provisioning steps")
        table.add_column("Step")
        table.add_column("Result")
        table.add_column("Detail", style="dim")
        for result in report.steps:
            if not result.ok:
                status = "[red]failed[/red]"
            elif result.changed:
                status = "[green]changed[/green]"
            else:
                status = "[cyan]unchanged[/cyan]"
            table.add_row(escape(result.name), status, escape(result.detail))
        return table

    def summary(self, report: ProvisionReport) -> None:
        self.console.print()
        self.console.print(self.steps_table(report))

        if not report.succeeded:
            failed = report.failed_step
            self.error(f"Provisioning stopped at \"{failed.name}\". Fix the cause and re-run;")
            self.error("completed steps are detected and skipped on the next run.")
            return

        self.console.print()
        self.info(RULE)
        self.info("LXD host, container, and initial CloudPanel setup finished.")
        self.info(RULE)
        self.console.print()
        self.next_steps(report.container_address, report.group_user_added)

    def next_steps(self, address: Optional[str] = None, group_user: Optional[str] = None) -> None:
        name = self.config.container_name
        port = self.config.panel_port

        self.warning("IMPORTANT NEXT STEPS (Manual):")
        self.info("1. Access CloudPanel Admin UI:")
        self.info(f"   - If your host has a public IP: https://<HOST_PUBLIC_IP>:{port}")
        if address:
            self.info(f"   - From the host or local network: https://{address}:{port} (container IP)")
        else:
            self.warning(
                f"   - Container IP could not be determined. Use 'lxc list {name}' on the host to find it."
            )
        self.info("   You will likely see a browser warning for a self-signed certificate. Proceed to access.")
        self.info("2. Create your CloudPanel administrator account when prompted on the first visit.")
        self.info(
            "3. Inside CloudPanel: configure your domain(s), SSL certificates "
            "(Let's Encrypt is supported), and databases as needed."
        )
        self.info("4. For GitHub integration (automated deployments):")
        self.info(f"   a. Access your container: lxc exec {name} -- bash")
        self.info(
            "   b. Install 'dploy': curl -sS https://dploy.cloudpanel.io/dploy "
            "-o /usr/local/bin/dploy && sudo chmod +x /usr/local/bin/dploy"
        )
        self.info("   c. As the site user (created by CloudPanel when you add a site):")
        self.info("      - Run 'dploy init' in the site's deployment root.")
        self.info("      - Generate an SSH key pair for deployment (ssh-keygen).")
        self.info("      - Add the public key as a Deploy Key to your GitHub repository.")
        self.info("      - Configure '~/.ssh/config' so the site user uses this key for github.com.")
        self.info(
            "      - Edit '~/.dploy/config.yml' with the repository URL, target path, "
            "shared files, and hooks (e.g. PHP-FPM reload)."
        )
        self.info("   d. Point the site's document root in CloudPanel at the 'current/public_html' symlink.")
        self.info(
            "5. Review and apply security hardening for the host, LXD, the container, "
            "CloudPanel, and your web applications."
        )

        if group_user:
            self.warning(
                f"Remember: user '{group_user}' was added to the '{self.config.lxd_group}' group. "
                f"A new login session is required before they can run lxc without sudo."
            )
