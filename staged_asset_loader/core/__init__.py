"""
StagedAssetLoader core submodule.
Contains the loading machinery itself:
 - The resource types and the progress counters
 - The handlers wrapping each resource kind's service
 - The batch runner, the stage orchestration and the abort controller
 - The thread pool fetching resources, and the pyglet-backed services
   decoding them
"""
