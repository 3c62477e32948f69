# Commands package for the Discord slash-command cogs
