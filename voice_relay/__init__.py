"""
voice_relay
~~~~~~~~~~~

WebRTC 语音房间信令中继服务。
"""
__version__ = "0.2.0"
