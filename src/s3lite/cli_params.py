"""Shared CLI parameter definitions.

Connection options are declared once here and taken by the application
callback, so every command sees the same flags with the same help text:

    s3lite --aws-profile myprofile ls s3://bucket/prefix/
"""

from typing import Annotated, Optional

import typer

S3PathArgument = Annotated[str, typer.Argument(help="S3 path (s3://bucket/key)")]

BucketArgument = Annotated[str, typer.Argument(help="Bucket name")]

AccessKeyOption = Annotated[
    Optional[str],
    typer.Option("--access-key-id", help="AWS access key ID"),
]

SecretKeyOption = Annotated[
    Optional[str],
    typer.Option("--secret-access-key", help="AWS secret access key"),
]

SessionTokenOption = Annotated[
    Optional[str],
    typer.Option("--session-token", help="AWS session token"),
]

RegionOption = Annotated[
    Optional[str],
    typer.Option("--region", help="AWS region name (default: S3LITE_DEFAULT_REGION)"),
]

EndpointUrlOption = Annotated[
    Optional[str],
    typer.Option("--endpoint-url", help="Custom S3 endpoint URL (path-style)"),
]

ProfileOption = Annotated[
    Optional[str],
    typer.Option("--aws-profile", help="AWS CLI profile name"),
]

VersionIdOption = Annotated[
    Optional[str],
    typer.Option("--version-id", help="Object version"),
]

PartSizeOption = Annotated[
    Optional[int],
    typer.Option("--part-size-mb", help="Multipart part size in MiB (5-5120)"),
]

ExpiresOption = Annotated[
    Optional[int],
    typer.Option("--expires", help="URL lifetime in seconds"),
]
