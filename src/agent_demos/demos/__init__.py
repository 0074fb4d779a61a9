"""
Console demos. Importing this package registers every demo with DemoRegistry.
"""

from agent_demos.demos.basic_chat import BasicChat
from agent_demos.demos.blog_post import BlogPostWorkflow
from agent_demos.demos.minion import Minion, MinionWithPlugins
