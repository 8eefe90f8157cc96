# yt-dlp configuration used to resolve a locator into a direct audio stream
YTDL_OPTIONS = {
    'format': 'bestaudio/best',
    'quiet': True,
    'no_warnings': True,
    'skip_download': True,
    'noplaylist': True,
    'nocheckcertificate': True,
    'socket_timeout': 15,
    'retries': 3,
    'default_search': 'ytsearch',
    'source_address': '0.0.0.0',
    'ignoreerrors': False,
    'no_color': True,
    'cachedir': False,
}

# ffmpeg input options for reading a remote stream
FFMPEG_INPUT_OPTIONS = [
    '-reconnect', '1',
    '-reconnect_streamed', '1',
    '-reconnect_delay_max', '5',
]

# ffmpeg output options for the on-disk artifact (MP3 via libmp3lame)
FFMPEG_OUTPUT_OPTIONS = [
    '-vn',
    '-acodec', 'libmp3lame',
    '-f', 'mp3',
]

# Options passed to discord.FFmpegPCMAudio when playing a finished artifact
FFMPEG_PLAYBACK_OPTIONS = {
    'before_options': '-nostdin',
    'options': '-vn',
}

ARTIFACT_PREFIX = 'audio_'
ARTIFACT_SUFFIX = '.mp3'
PARTIAL_SUFFIX = '.part'

# Discord embed colours
COLORS = {
    'SUCCESS': 0x2ecc71,  # Green
    'ERROR': 0xe74c3c,    # Red
    'WARNING': 0xf1c40f,  # Yellow
    'INFO': 0x3498db      # Blue
}

# User-facing messages
MESSAGES = {
    'JOINED': "Here I am :)",
    'VOICE_CHANNEL_REQUIRED': "Get in a voice channel...",
    'LINK_REQUIRED': "Give me a link...",
    'SONG_ACCEPTED': "Added to queue: {locator}",
    'NOW_PLAYING': "🎵 Now playing: **{title}**",
    'LOAD_FAILED': "Could not load {locator}: {detail}",
    'NOTHING_PLAYING': "Nothing is playing...",
    'NOTHING_TO_PAUSE': "Nothing is playing, so nothing to pause...",
    'NOTHING_TO_RESUME': "Nothing to resume...",
    'NO_SESSION': "I'm not in a voice channel.",
    'PAUSED': "⏸️ Paused",
    'RESUMED': "▶️ Resumed",
    'SKIPPED': "⏭️ Skipping song...",
    'STOPPED': "⏹️ Playback stopped and queue cleared",
    'GOODBYE': "Leaving... 👋",
    'QUEUE_TITLE': "🎵 Queue",
    'QUEUE_EMPTY': "The queue is empty. 🎵",
    'QUEUE_PENDING': "{count} more still loading",
    'QUEUE_REMAINING': "…and {count} more",
}

# Maximum number of queued items listed by the queue command
QUEUE_DISPLAY_LIMIT = 20
