"""Reply texts sent by the bot."""

from jinja2 import Template

INVITE_TEMPLATE = Template("Invite link: {{ invite_link }}")

UNSEEN_WARNING_TEMPLATE = Template(
    "⚠️  I have never heard from this repo. "
    "Please contact the author to install the blob-mirror GitHub App "
    "at {{ app_url }} for this repo."
)

MIRROR_USAGE = "Usage: `mirror <url> [message splits]`"
INVALID_URL = "The URL must be a file on GitHub repo."
GUILD_ONLY = "blob-mirror is only usable in guild channels"
STORE_FAILURE = "Error storing message group"
INTERNAL_FAILURE = "Something went wrong while handling this command"

PROCESSING_REACTION = "⏳"
WARNING_REACTION = "⚠️"
