import discord
import logging
from typing import Optional
from discord.ext import commands

from jukebox.core.interfaces import PlayerEvent, QueueItem
from jukebox.utils.constants import MESSAGES, COLORS, QUEUE_DISPLAY_LIMIT
from jukebox.utils.embeds import success, warning, error, info
from jukebox.utils.exceptions import (
    InvalidCommandState,
    MusicBotException,
    NoActiveSession,
    NotInVoiceChannel,
)

logger = logging.getLogger(__name__)


class Music(commands.Cog):
    """Text commands that drive the guild's playback session."""

    def __init__(self, bot):
        self.bot = bot

    @property
    def sessions(self):
        return self.bot.sessions

    def _notifier_for(self, channel):
        """Build the session notifier that reports playback events to a text channel."""
        async def notify(event: PlayerEvent, item: Optional[QueueItem], detail: Optional[str]):
            if event is PlayerEvent.SONG_STARTED:
                await channel.send(embed=info(MESSAGES['NOW_PLAYING'].format(title=item.display_title)))
            elif event is PlayerEvent.SONG_FAILED:
                await channel.send(embed=error(MESSAGES['LOAD_FAILED'].format(
                    locator=item.source_locator, detail=detail or 'unknown error')))
            elif event is PlayerEvent.QUEUE_EMPTY:
                await channel.send(embed=info(MESSAGES['QUEUE_EMPTY']))
        return notify

    @staticmethod
    def _voice_channel_of(ctx) -> Optional[discord.abc.Connectable]:
        voice = getattr(ctx.author, 'voice', None)
        return voice.channel if voice else None

    async def _reject(self, ctx, e: MusicBotException):
        if isinstance(e, (InvalidCommandState, NoActiveSession, NotInVoiceChannel)):
            await ctx.send(embed=warning(e.message))
        else:
            await ctx.send(embed=error(e.message))

    @commands.command(name='join')
    async def join(self, ctx: commands.Context):
        """Join the issuer's voice channel"""
        channel = self._voice_channel_of(ctx)
        if channel is None:
            await ctx.reply(MESSAGES['VOICE_CHANNEL_REQUIRED'])
            return

        if not ctx.guild.voice_client:
            await channel.connect(self_deaf=True)
        elif ctx.guild.voice_client.channel != channel:
            await ctx.guild.voice_client.move_to(channel)
        await ctx.reply(MESSAGES['JOINED'])

    @commands.command(name='play', aliases=['p'])
    async def play(self, ctx: commands.Context, *, locator: str = None):
        """Download a link and add it to the queue"""
        locator = (locator or '').strip()
        if not locator:
            await ctx.reply(MESSAGES['LINK_REQUIRED'])
            return

        try:
            await self.sessions.request_play(
                ctx.guild.id,
                locator,
                self._voice_channel_of(ctx),
                requester=ctx.author.display_name,
                notifier=self._notifier_for(ctx.channel),
            )
        except NotInVoiceChannel as e:
            await ctx.reply(e.message)
            return
        except MusicBotException as e:
            await self._reject(ctx, e)
            return
        except discord.DiscordException as e:
            logger.error(f"Could not connect to voice in guild {ctx.guild.id}: {e}")
            await ctx.send(embed=error(f"Could not join your voice channel: {e}"))
            return

        await ctx.send(embed=success(MESSAGES['SONG_ACCEPTED'].format(locator=locator)))

    @commands.command(name='pause')
    async def pause(self, ctx: commands.Context):
        """Pause the current song"""
        try:
            await self.sessions.request_pause(ctx.guild.id)
        except MusicBotException as e:
            await self._reject(ctx, e)
            return
        await ctx.send(embed=success(MESSAGES['PAUSED']))

    @commands.command(name='resume')
    async def resume(self, ctx: commands.Context):
        """Resume a paused song"""
        try:
            await self.sessions.request_resume(ctx.guild.id)
        except MusicBotException as e:
            await self._reject(ctx, e)
            return
        await ctx.send(embed=success(MESSAGES['RESUMED']))

    @commands.command(name='skip', aliases=['s'])
    async def skip(self, ctx: commands.Context):
        """Skip the current song"""
        try:
            await self.sessions.request_skip(ctx.guild.id)
        except MusicBotException as e:
            await self._reject(ctx, e)
            return
        await ctx.reply(MESSAGES['SKIPPED'])

    @commands.command(name='stop')
    async def stop(self, ctx: commands.Context):
        """Stop playback and clear the queue, staying in voice"""
        try:
            await self.sessions.request_stop(ctx.guild.id)
        except MusicBotException as e:
            await self._reject(ctx, e)
            return
        await ctx.send(embed=success(MESSAGES['STOPPED']))

    @commands.command(name='leave')
    async def leave(self, ctx: commands.Context):
        """Disconnect from voice and drop the queue"""
        try:
            await self.sessions.request_leave(ctx.guild.id)
        except NoActiveSession as e:
            # Joined with !join but never played anything
            if ctx.guild.voice_client:
                await ctx.guild.voice_client.disconnect()
            else:
                await self._reject(ctx, e)
                return
        await ctx.reply(MESSAGES['GOODBYE'])

    @commands.command(name='queue', aliases=['q'])
    async def queue(self, ctx: commands.Context):
        """Show the current song and the next queued ones"""
        try:
            snapshot = await self.sessions.snapshot(ctx.guild.id)
        except NoActiveSession:
            await ctx.send(embed=info(MESSAGES['QUEUE_EMPTY']))
            return

        embed = discord.Embed(
            title=MESSAGES['QUEUE_TITLE'],
            color=COLORS['INFO'],
        )

        lines = []
        if snapshot.current is not None:
            lines.append(f"▶️ **{snapshot.current.display_title}** ({snapshot.state.value})")
        limit = min(QUEUE_DISPLAY_LIMIT, len(snapshot.queued))
        for i, item in enumerate(snapshot.queued[:limit]):
            requester = item.requester or 'Unknown'
            lines.append(f"**{i+1}.** {item.display_title} • 👤 `{requester}`")

        embed.description = "\n".join(lines) if lines else MESSAGES['QUEUE_EMPTY']

        footer = []
        if len(snapshot.queued) > limit:
            footer.append(MESSAGES['QUEUE_REMAINING'].format(count=len(snapshot.queued) - limit))
        if snapshot.pending:
            footer.append(MESSAGES['QUEUE_PENDING'].format(count=snapshot.pending))
        if footer:
            embed.set_footer(text=" • ".join(footer))

        await ctx.send(embed=embed)


async def setup(bot):
    """Register the music cog"""
    await bot.add_cog(Music(bot))
