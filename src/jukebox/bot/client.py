import logging
import traceback
import discord
from discord.ext import commands

from jukebox.core.output import DiscordOutputSink
from jukebox.core.registry import SessionRegistry
from jukebox.utils.embeds import error
from jukebox.utils.exceptions import NoActiveSession

logger = logging.getLogger(__name__)


class JukeboxBot(commands.Bot):
    """
    Discord bot that queues and plays remote audio.

    Attributes:
        config (dict): Configuration from load_config()
        sessions (SessionRegistry): Playback sessions per guild
    """

    def __init__(self, config: dict):
        self.config = config

        intents = discord.Intents.default()
        intents.message_content = True  # Text commands
        intents.voice_states = True

        super().__init__(
            command_prefix=self.config['command_prefix'],
            intents=intents,
            help_command=None
        )

        self.sessions = SessionRegistry(self.config, sink_factory=self.connect_sink)

    async def connect_sink(self, voice_channel) -> DiscordOutputSink:
        """Connect (or move) to a voice channel and wrap the client as an output sink."""
        voice_client = voice_channel.guild.voice_client
        if voice_client is None:
            voice_client = await voice_channel.connect(self_deaf=True)
        elif voice_client.channel != voice_channel:
            await voice_client.move_to(voice_channel)
        return DiscordOutputSink(voice_client, ffmpeg_path=self.config.get('ffmpeg_path', 'ffmpeg'))

    async def setup_hook(self):
        """Configure bot extensions on startup"""
        purged = self.sessions.purge_stale_artifacts()
        if purged:
            logger.info(f"Removed {purged} leftover artifacts")
        await self.load_extension('jukebox.cogs.music')

    async def on_ready(self):
        """Called when the bot is ready and connected"""
        logger.info(f"Bot connected as {self.user}")
        logger.info("Bot ready to receive commands!")

        activity = discord.Activity(
            type=discord.ActivityType.listening,
            name=f"{self.config['command_prefix']}play"
        )
        await self.change_presence(activity=activity)

    async def on_voice_state_update(self, member, before, after):
        """Tear the session down when the bot is disconnected from voice."""
        if self.user is None or member.id != self.user.id:
            return
        if before.channel is not None and after.channel is None:
            guild_id = before.channel.guild.id
            logger.info(f"Disconnected from voice in guild {guild_id}")
            try:
                await self.sessions.request_leave(guild_id)
            except NoActiveSession:
                pass

    async def on_command_error(self, ctx, exception):
        """Global command error handler"""
        if isinstance(exception, commands.CommandNotFound):
            return
        if isinstance(exception, commands.CommandInvokeError):
            exception = exception.original

        logger.error(f"Error in command {ctx.command}: {exception}")
        await ctx.send(embed=error(str(exception)), delete_after=10)
        if self.config.get('debug', False):
            traceback.print_exception(type(exception), exception, exception.__traceback__)

    async def close(self):
        """Clean shutdown of the bot"""
        logger.info("Bot shutdown initiated...")
        try:
            await self.sessions.shutdown()
        except Exception as e:
            logger.error(f"Error shutting down sessions: {e}")
        await super().close()
        logger.info("Bot shutdown completed")

    def run(self):
        """Run the bot with the configured token"""
        super().run(self.config['bot_token'], log_handler=None)
