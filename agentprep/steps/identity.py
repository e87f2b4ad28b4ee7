"""
Identity and authentication steps.

Both write git config only; their inverses put back the captured values
for exactly the keys they touched.
"""

from ..protocol.errors import AgentPrepError
from ..vcs.git import ConfigScope
from .base import ReversibleStep, StepContext


class IdentityStep(ReversibleStep):
    """Commit as the agent's bot account."""

    name = "identity"
    title = "Configuring agent identity"

    def apply(self, ctx: StepContext):
        identity = ctx.config.identity
        ctx.git.set_config("user.name", identity.user_name, ConfigScope.GLOBAL)
        ctx.git.set_config("user.email", identity.user_email, ConfigScope.GLOBAL)
        ctx.logger.info(f"Git identity set to {identity.user_name} <{identity.user_email}>")

    def revert(self, ctx: StepContext):
        ctx.restore_config_keys("global:user.name", "global:user.email")


class AuthenticationStep(ReversibleStep):
    """
    Point origin at a token-bearing URL and store credentials.

    Without a token the step is skipped with a warning, unless the
    configuration says authentication is required.
    """

    name = "authentication"
    title = "Configuring git authentication"

    def apply(self, ctx: StepContext):
        auth = ctx.config.auth
        if not auth.token:
            if auth.required:
                raise AgentPrepError("Authentication is required but no token was provided")
            ctx.warn("No GitHub token provided; skipping authentication setup")
            return
        ctx.logger.set_secret(auth.token)

        if not auth.repository:
            ctx.warn("No repository name provided; remote URL left unchanged")
        elif ctx.config_state is not None and ctx.config_state.remote_url is None:
            ctx.warn("No 'origin' remote configured; remote URL left unchanged")
        else:
            ctx.git.set_config("remote.origin.url", auth.remote_url(), ConfigScope.LOCAL)
            ctx.logger.info(f"Remote 'origin' set to authenticated {auth.host} URL")

        ctx.git.set_config("credential.helper", "store", ConfigScope.GLOBAL)
        ctx.logger.info("Git authentication configured")

    def revert(self, ctx: StepContext):
        ctx.restore_config_keys("local:remote.origin.url", "global:credential.helper")
