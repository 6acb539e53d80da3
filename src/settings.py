LOGO = r"""
       _           ___
 _ __ (_)_ __  ___|_  )_ _ _  _ _ _
| '_ \| | '_ \/ -_)/ /| '_| || | ' \
| .__/|_| .__/\___/___|_|  \_,_|_||_|
|_|     |_|
"""

# Коды выхода CLI
EXIT_OK = 0
EXIT_PIPELINE_FAILED = 1
EXIT_INVALID = 2
